"""
Web application package for the RAY Radar control panel.

This package contains the Starlette application, its request handlers and
middleware, and the Hypercorn entry point that serves them.
"""
