"""
naws_import package marker.

Import NAWS meeting export spreadsheets into a BMLT root server.
"""
