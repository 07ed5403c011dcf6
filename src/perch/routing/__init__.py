"""Routing: route entries and a trie router recompiled per registration batch."""

from perch.routing.route import Method, RouteEntry, RouteView
from perch.routing.router import Router

__all__ = ["Method", "RouteEntry", "RouteView", "Router"]
