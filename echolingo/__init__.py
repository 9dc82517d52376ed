"""EchoLingo Lab: spaced-repetition review for English words and Japanese sentences."""

__version__ = "0.1.0"
