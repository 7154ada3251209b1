"""
Command-line entrypoints, one per service operation.
"""
