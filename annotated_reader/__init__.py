"""
Annotated reader core package.

This package currently focuses on the article subsystem. It exposes
dataclasses for articles and their annotations, observable application
state, snapshot persistence with debounced writes, a pluggable analysis
service, and a queue worker that drives submitted articles through
analysis one at a time.
"""
