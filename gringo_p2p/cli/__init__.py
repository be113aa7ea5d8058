"""
gringo P2P CLI
--------------
Developer entry points for the wire layer.

  - wire : encode/decode framed messages as hex, list message tags

Usage examples:
  gringo-wire encode ping --total-difficulty 1000 --height 42
  python -m gringo_p2p.cli.wire decode <hex>
"""
from __future__ import annotations

from .wire import main

__all__ = ["main"]
