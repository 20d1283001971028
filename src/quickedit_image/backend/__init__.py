"""
Reference backend for the in-place image editor.

Serves the three requests the editor makes for an image field: upload and
validate a replacement image, describe the field's alt/title settings, and
commit the pending edit. Uncommitted edits wait in a SQLite temp store.

Usage:
    uvicorn quickedit_image.backend.main:app --reload
"""
