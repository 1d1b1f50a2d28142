"""
Entry point of `notch` CLI.
"""

from .main import run

run()
