"""
Static fruit catalog.

Responsibilities:
- Ship the fixed list of fruits with their emoji and category tags.
- Describe each tag and each rating criterion for display.
- Load once and hand out the same immutable Fruit objects afterwards.
"""
