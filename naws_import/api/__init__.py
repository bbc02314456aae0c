"""
naws_import/api package marker.
"""
