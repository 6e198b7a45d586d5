"""Study-document storage API: size-routed uploads to Supabase Storage and Google Drive."""

__version__ = "0.1.0"
