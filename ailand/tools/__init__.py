"""
Tool Integration Layer.

Tools the model may call mid-conversation, the registry that exposes them to
the completion loop, and the built-in research tool.
"""
