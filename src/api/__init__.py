#!/usr/bin/env python3
"""
HTTP API for triggering and inspecting monitoring.
"""

from .app import create_app

__all__ = ['create_app']
