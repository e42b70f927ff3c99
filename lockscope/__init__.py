"""lockscope — npm lockfile inventory with registry and source-host enrichment."""

__version__ = "0.1.0"
