"""Persistence of validated entities.

The import store writes each accepted entity as a pending import in the target
database; :mod:`bbimport.store.sql` holds the table definitions and engine
helpers.
"""
