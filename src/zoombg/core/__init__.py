"""
Core modules for zoombg.

This package contains the core business logic for:
- Configuration and the persistent key store
- Service adapters, resolution and retry
- The generate/preview/approve/save workflow
- Saving into the Zoom backgrounds directory
"""
