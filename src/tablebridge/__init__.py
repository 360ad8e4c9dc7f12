"""
tablebridge - Schema-driven HTTP data API for relational databases.

Point it at a database and every base table becomes listable, filterable
and editable over JSON, with no per-table code.
"""

__version__ = "0.3.0"
