"""
recommender/rebuild_index.py
----------------------------
Rebuilds and verifies the product vector index from catalog entries.

    python -m recommender.rebuild_index            # reuse cache when complete
    python -m recommender.rebuild_index --force    # re-embed everything
    python -m recommender.rebuild_index --verify   # print integrity report
"""

from __future__ import annotations

import argparse
import asyncio

from agent_core.config import get_settings
from agent_core.container import ServiceContainer, build_container
from agent_core.logger import setup_logging
from recommender.diagnostics import diagnose_index
from recommender.index_types import BuildReport


def verify_index(container: ServiceContainer) -> bool:
    report = diagnose_index(container.index, container.catalog.list_products())
    print(f"✅ Verified {report.total_indexed} vectors, dim={report.embedding_dimension}")
    if report.cache_checksum:
        print(f"Checksum: {report.cache_checksum[:16]}...")
    print(f"Mean norm ≈ {report.mean_norm:.4f}")
    print(f"Coverage: {report.coverage:.1%} of {report.catalog_size} catalog items")
    if report.needs_rebuild:
        print(f"⚠️ Missing: {report.missing_ids}  Stale: {report.stale_ids}")
    return not report.needs_rebuild


async def rebuild_index(container: ServiceContainer, force: bool = False) -> BuildReport:
    products = container.catalog.list_products()
    print(f"🧠 Rebuilding vector index for {len(products)} catalog items...")
    report = await container.index.build(products, force=force, progress=True)
    source = "cache" if report.from_cache else "provider"
    print(f"✅ {report.succeeded} indexed from {source}, {report.failed} failed in {report.duration_sec}s")
    if report.failed_ids:
        print(f"❌ Failed: {', '.join(report.failed_ids)}")
    return report


def main(argv=None, container: ServiceContainer | None = None) -> int:
    parser = argparse.ArgumentParser(description="Rebuild the product vector index")
    parser.add_argument("--force", action="store_true", help="Ignore the cache and re-embed every product")
    parser.add_argument("--verify", action="store_true", help="Run post-build verification")
    args = parser.parse_args(argv)

    if container is None:
        settings = get_settings()
        setup_logging(settings.log_level, settings.log_dir)
        container = build_container(settings)

    report = asyncio.run(rebuild_index(container, force=args.force))
    if report.error:
        print(f"❌ {report.error}")
        return 1
    if args.verify and not verify_index(container):
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
