"""
Clinic Modules.

Thin orchestration layers over the Clinic Kernel and Engines.

Modules:
- Reporting: financial summaries, period comparisons, accounting rollups
  and the clinic overview
"""
