"""
Command-line tools built on the notch package.
"""
