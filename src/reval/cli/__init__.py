# Copyright (c) Syntropy Systems
"""reval CLI."""
