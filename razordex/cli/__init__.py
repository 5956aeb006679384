"""Razor DEX command line tools."""
