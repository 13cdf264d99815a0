"""Adapters connecting the import domain to files, Google Sheets and SQL storage."""
