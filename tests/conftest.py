"""
Root-level conftest for all tests.

Settings are read when the application module is imported, so test mode is
switched on before anything from ``orgauth`` is loaded.
"""
import os

if not os.getenv("TESTING"):
    os.environ["TESTING"] = "true"
if not os.getenv("JSON_LOGS"):
    os.environ["JSON_LOGS"] = "false"
