"""Command line interface for the layer planner."""
