"""Tasting domain services: session lifecycle, whiskies, guesses and views.

HTTP routes, socket handlers and CLI commands call into these modules; each
mutating service re-checks the session status inside the transaction that
performs the write.
"""
