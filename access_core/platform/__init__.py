"""Cross-cutting platform concerns: errors, audit trail and caller identity."""
