"""Parsers for the public task reference markdown."""
