"""
Entitlements Service package for the Campus Access Layer.

This package decides what a signed-in user may see and do inside their
school tenant. It provides:

- app.main: API surface for entitlement resolution, gate checks and health.
- app.catalog: Plan tiers with their features and role capability tables.
- app.resolution: Membership lookup ports and the entitlement resolver.
- app.gates: Gate evaluation, upgrade hints and the consumer render contract.
- app.cache: Redis-backed caching of resolved entitlements.
- app.persistence: PostgreSQL membership and tenant feature store.
- app.auth: Bearer token verification.

Guidelines:
- Catalogs are immutable and injected; gate evaluation is pure.
- Users without an active membership get the free/teacher default.
- Keep resolutions observable (metrics + logs).
"""
