"""
Command-line runners for the crypto backtester.
"""
