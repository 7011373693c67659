"""
Rating-to-ranking pipeline.

Responsibilities:
- Define the rating, rated-fruit and session-state models.
- Score ratings into totals and S/A/B/C/F tiers.
- Filter the catalog by tag and search text.
- Sort and group rated fruits for the results table.
"""
