"""Module entrypoint for ``python -m cachegroup_schema``."""

from __future__ import annotations

from cachegroup_schema.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
