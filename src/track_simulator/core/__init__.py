"""Physics core: track geometry, integrator, energy ledger and controller."""
