"""Packaged predicate factories, discovered by seqclass.registry.discover()."""
