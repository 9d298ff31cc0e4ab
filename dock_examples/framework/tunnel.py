"""
Public URL for the local callback server.

Dock Health must reach the callback server from the internet. Either an
existing proxy is configured (CALLBACK_URL) or the local port is forwarded
through ngrok.
"""

from __future__ import annotations

from typing import Optional

from loguru import logger

from .config_loader import ConfigLoader, ConfigurationError


class CallbackTunnel:
    """
    Usage:
        with CallbackTunnel.open(config, port=server.port) as tunnel:
            register_webhook(tunnel.url)
    """

    def __init__(self, url: str, listener=None) -> None:
        self.url = url
        self._listener = listener

    @classmethod
    def open(
        cls,
        config: Optional[ConfigLoader] = None,
        port: Optional[int] = None,
    ) -> "CallbackTunnel":
        """
        Return the configured callback URL or start an ngrok tunnel.

        Raises:
            ConfigurationError: No callback URL and no ngrok auth token.
        """
        config = config or ConfigLoader()

        url = config.get("callback.url")
        if url:
            logger.info(f"Using configured callback URL: {url}")
            return cls(url)

        authtoken = config.get("ngrok.authtoken")
        if not authtoken:
            raise ConfigurationError("NGROK_AUTHTOKEN is undefined!")

        import ngrok

        if port is None:
            port = config.get("callback.local_port", 3000)
        port = int(port)
        listener = ngrok.forward(port, authtoken=authtoken)
        logger.info(f"ngrok tunnel {listener.url()} -> localhost:{port}")
        return cls(listener.url(), listener)

    @property
    def is_ngrok(self) -> bool:
        return self._listener is not None

    def close(self) -> None:
        """Disconnect the tunnel and stop the ngrok agent, if we started one."""
        if self._listener is None:
            return

        import ngrok

        ngrok.disconnect(self.url)
        ngrok.kill()
        self._listener = None
        logger.info(f"ngrok tunnel closed: {self.url}")

    def __enter__(self) -> "CallbackTunnel":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


__all__ = ["CallbackTunnel"]
