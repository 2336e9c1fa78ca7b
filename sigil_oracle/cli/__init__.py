"""Command-line interface for the insight subsystem.

``python -m sigil_oracle.cli`` works against the same durable store and
explanation provider as the API server, so explanations and votes made
from the terminal show up on the dashboard and vice versa.
"""
