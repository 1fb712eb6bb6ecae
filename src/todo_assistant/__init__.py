"""
Todo Assistant backend package.

The FastAPI application lives in todo_assistant.main (`app`, or `create_app()`
to build one around a specific repository). The application is not imported
here so that using the store or the ordering helpers has no side effects.
"""

__version__ = "0.1.0"
