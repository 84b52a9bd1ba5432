"""
Stepwise - Interactive Exercise Tutor

A terminal tutor that walks you through programming exercises with an
embedded modal editor, runs the toolchain on your code and tracks progress.
"""

__version__ = "0.1.0"
