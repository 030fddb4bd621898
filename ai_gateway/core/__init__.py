"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Named constants, upstream header names, style presets
- exceptions: Custom exception hierarchy
- ingress: HTTP boundary helpers (body parsing, principal resolution)
"""
