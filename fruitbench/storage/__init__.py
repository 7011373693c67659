"""
Session state persistence.

Responsibilities:
- Keep the whole session (ratings, selection, sort and filter settings) in
  one versioned record in a key-value backend.
- Sanitize anything read back from storage or imported from a file, field
  by field, instead of failing the whole load.
- Log storage failures and carry on rather than raising to the caller.
"""
