"""
Export Routing Domain

Routes files exported into the inbox folder to their destination folder:
- matcher.py - routing key extraction from file names
- resolver.py - destination folder lookup
- archive.py - retirement of routed originals into the archive
- retention.py - age-based archive sweep and import folder cleanup
- pipeline.py - per-file routing pass and startup scan
- watcher.py - watchdog adapter for new inbox files
- service.py - long-running service lifecycle and CLI
"""

__all__ = ["matcher", "resolver", "archive", "retention", "pipeline", "watcher", "service"]
