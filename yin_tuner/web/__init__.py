"""WebSocket and upload front end for the tuner engine; the ASGI app is ``yin_tuner.web.server:app``."""
