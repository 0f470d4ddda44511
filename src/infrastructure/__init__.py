"""Infrastructure layer for external system integrations.

This package holds the concrete integrations the lookups depend on:

- **anaf**: HTTPS client, version fallback, retry engine and error taxonomy
  for the ANAF VAT registry and e-Factura registry web services
- **constants**: upstream endpoints and firewall markers

Nothing here is persisted or cached; every lookup is a fresh pass-through.
"""
