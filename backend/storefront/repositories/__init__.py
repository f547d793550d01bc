from .query_builder import QueryBuilder, query_builder

__all__ = ["QueryBuilder", "query_builder"]
