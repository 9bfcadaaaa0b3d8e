"""
HTTP routers, one per capability of the mode route table: items, ui, health
and metrics.
"""
