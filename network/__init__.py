"""
Network core - resolve incoming records and find warm paths to targets.

Modules:
- store: temporal store over a repository (entities, interval relationships)
- matching: identifier normalization and name similarity
- locks: sharded identity locks
- resolver: record -> Matched / Ambiguous / Created
- review_queue: ambiguous resolutions awaiting adjudication
- cascade: bounded enrichment planning per import batch
- paths: ranked temporal connection paths
- importer: wires the above into one import batch

Submodules are imported directly (from network.resolver import EntityResolver)
so the repository layer can depend on network.errors without a cycle.
"""
