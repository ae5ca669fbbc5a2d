#!/usr/bin/env python3
"""
Serve command - run the HTTP trigger endpoints with uvicorn.
"""

from argparse import Namespace

import uvicorn

from .base import BaseCommand


class ServeCommand(BaseCommand):
    """Serve the monitoring HTTP API."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute serve subcommand."""
        try:
            if subcommand == "api":
                return self.api(args)
            else:
                return self.unknown_subcommand(subcommand)

        except Exception as e:
            return self.handle_error(e, f"serve {subcommand}")

    def api(self, args: Namespace) -> int:
        from api.app import create_app

        app_config = self.config.app
        app = create_app(self._container)
        uvicorn.run(
            app,
            host=args.host or app_config.api_host,
            port=args.port or app_config.api_port,
            log_level=app_config.log_level.lower()
        )
        return 0
