"""
Engine — Secret naming, publishing and the export run loop.
"""
