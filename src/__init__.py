"""ANAF Proxy - company lookups against the Romanian tax administration.

The service accepts a fiscal identifier (CUI) over HTTP and queries the ANAF
public web services on the caller's behalf: the VAT payer registry for
company details and the e-Factura registry for e-invoicing enrolment.

Architecture Overview:
- **API Layer**: FastAPI routes, middleware and exception handlers
- **Core Layer**: Configuration, logging, tracing and the exception hierarchy
- **Domain Layer**: CUI normalization and result shaping
- **Infrastructure Layer**: ANAF client, version fallback and retry engine

The service is a stateless pass-through: nothing is cached or persisted.
"""
