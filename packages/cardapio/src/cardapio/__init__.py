"""
Cardapio - Tenant Data Service

Mediates all reads and writes against the relational store on behalf of a
single company (tenant) at a time:

- Credential store (admin, company owner and customer accounts)
- Tenant registry (companies, storefront lookup by slug)
- Menu catalog (categories and products, tenant-owned)
- Order ledger (dashboard aggregates, order history)

Every mutation invalidates the cached reads it affects.
"""
