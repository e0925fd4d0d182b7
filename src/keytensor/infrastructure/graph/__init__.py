from ._graph import Graph, Symbol

__all__ = [Graph.__name__, Symbol.__name__]
