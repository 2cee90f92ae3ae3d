"""Expense tracker API: credentials, sessions, an owner-scoped ledger and its summaries."""
