"""scipnav — read-only query engine over SCIP code intelligence indexes."""

__version__ = "0.1.0"
