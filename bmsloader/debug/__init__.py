from .trace import EventType, Tracer, TraceEvent, setup_logging

__all__ = ["EventType", "Tracer", "TraceEvent", "setup_logging"]
