"""
Streaming ask orchestration for the desktop overlay.

Builds provider requests, decodes server-sent token streams, drives the
single-flight ask session and runs the realtime transcription socket.
"""

__version__ = "0.1.0"
