"""Registry — signed, revisioned entries addressed by (public key, data key).

The registry layer provides:
- Models: entries, signed entries, and their size/revision limits
- Client: verified lookups and publishes over a transport
- Revision cache: per-key locking and last-known revisions
"""
