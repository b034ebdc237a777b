"""Market data viewer backend: historical queries and live streaming over HTTP."""
