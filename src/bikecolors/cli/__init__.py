"""
Command line interface for bikecolors.
"""
