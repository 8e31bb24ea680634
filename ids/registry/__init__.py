"""Registry — the catalog of reusable artifacts the decision engine queries.

The registry provides:
- Loading: read the entity catalog and justification journal into an
  immutable, indexed snapshot
- Lookup: by id, by entity type, by category
- Consumer graph: who depends on an entity, directly and transitively
"""
