"""
Sharing and export.

Responsibilities:
- Encode ratings and selection into a shareable link and decode it back.
- Let an opened share link take priority over the saved session.
- Produce the downloadable export document and its filename.
"""
