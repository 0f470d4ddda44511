"""Domain layer: lookup inputs and the caller-facing result shapes.

Modules here are pure: they never touch the network. They normalize what the
caller sent and reshape what ANAF answered.

- **lookup**: CUI normalization and the per-call ``LookupRequest``
- **company**: mapping of a VAT registry answer to ``FormattedCompany``
- **efactura**: shaping of an e-Factura registry answer
"""
