"""
ScriptMenu API Package.

HTTP and WebSocket host for the command tree.
Requires Python 3.11+.
"""
