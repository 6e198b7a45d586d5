"""
Provider abstractions for object storage.
Supabase Storage is the primary backend; Google Drive is an optional secondary for large files.
"""
