"""Analyzers — lexical matching and relevance scoring of intents against entities."""
