# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""credproxy - Credential broker that executes operations on behalf of applications."""

__version__ = "0.1.0"

__all__ = ["__version__"]
