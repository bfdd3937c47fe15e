"""
Configuration — Property catalogue, resolution and validation.
"""
