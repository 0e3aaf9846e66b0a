"""httpredis: answer "is this Redis node a stable master?" over HTTP."""

__version__ = "0.3.0"
