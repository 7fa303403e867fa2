"""
Caching of extracted hazard facts.
Documents are keyed by content hash, so a renamed copy of a safety data sheet
is still a cache hit.
"""
import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional, Union

import joblib

from coshh.extractors import HazardFacts
from coshh.utils import document_hash

logger = logging.getLogger(__name__)

# Bump when extraction output changes shape so stale entries are ignored
CACHE_FORMAT = 'facts-v1'
SECONDS_PER_DAY = 24 * 3600


class ExtractionCache:
    def __init__(self, cache_dir: Union[str, Path] = "cache/", max_cache_size_mb: float = 100,
                 max_age_days: float = 30):
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.metadata_file = self.cache_dir / "cache_metadata.json"
        self.max_cache_size_mb = max_cache_size_mb
        self.max_age_days = max_age_days

    def _cache_file(self, document_path: Union[str, Path]) -> Path:
        return self.cache_dir / f"{document_hash(document_path)}_{CACHE_FORMAT}.pkl"

    def _get_metadata(self) -> Dict[str, Dict[str, Any]]:
        if self.metadata_file.exists():
            try:
                with open(self.metadata_file, 'r') as f:
                    return json.load(f)
            except json.JSONDecodeError:
                logger.warning("Cache metadata %s is corrupt, starting afresh", self.metadata_file)
        return {}

    def _save_metadata(self, metadata: Dict[str, Dict[str, Any]]):
        with open(self.metadata_file, 'w') as f:
            json.dump(metadata, f, indent=2)

    def _age_days(self, cache_file: Path) -> float:
        return (time.time() - cache_file.stat().st_mtime) / SECONDS_PER_DAY

    def _remove(self, cache_file: Path, metadata: Dict[str, Dict[str, Any]]):
        cache_file.unlink(missing_ok=True)
        metadata.pop(cache_file.name, None)

    def _cleanup_cache(self):
        """Drop expired entries, then the oldest until the size limit holds"""
        metadata = self._get_metadata()

        for cache_file in self.cache_dir.glob("*.pkl"):
            if self._age_days(cache_file) > self.max_age_days:
                self._remove(cache_file, metadata)

        limit = self.max_cache_size_mb * 1024 * 1024
        cache_files = sorted(self.cache_dir.glob("*.pkl"), key=lambda f: f.stat().st_mtime)
        total_size = sum(f.stat().st_size for f in cache_files)
        for cache_file in cache_files:
            if total_size <= limit:
                break
            total_size -= cache_file.stat().st_size
            self._remove(cache_file, metadata)

        self._save_metadata(metadata)

    def get(self, document_path: Union[str, Path]) -> Optional[HazardFacts]:
        """Cached facts for a document, or None on a miss"""
        cache_file = self._cache_file(document_path)
        if not cache_file.exists():
            return None

        metadata = self._get_metadata()
        if self._age_days(cache_file) > self.max_age_days:
            self._remove(cache_file, metadata)
            self._save_metadata(metadata)
            return None

        try:
            facts = joblib.load(cache_file)
        except Exception as e:
            logger.warning("Discarding unreadable cache entry %s: %s", cache_file.name, e)
            self._remove(cache_file, metadata)
            self._save_metadata(metadata)
            return None

        entry = metadata.setdefault(cache_file.name, {})
        entry.update({
            'last_accessed': time.time(),
            'document_path': str(document_path),
            'hits': entry.get('hits', 0) + 1,
        })
        self._save_metadata(metadata)
        logger.debug("Cache hit for %s", document_path)
        return facts

    def set(self, document_path: Union[str, Path], facts: HazardFacts):
        """Cache facts for a document"""
        self._cleanup_cache()

        cache_file = self._cache_file(document_path)
        joblib.dump(facts, cache_file, compress=3)

        metadata = self._get_metadata()
        metadata[cache_file.name] = {
            'created': time.time(),
            'document_path': str(document_path),
            'hits': 0,
            'size_bytes': cache_file.stat().st_size,
        }
        self._save_metadata(metadata)

    def get_cache_stats(self) -> Dict[str, Any]:
        metadata = self._get_metadata()
        cache_files = list(self.cache_dir.glob("*.pkl"))

        total_size = sum(f.stat().st_size for f in cache_files)
        total_hits = sum(item.get('hits', 0) for item in metadata.values())

        return {
            'total_files': len(cache_files),
            'total_size_mb': round(total_size / (1024 * 1024), 2),
            'total_hits': total_hits,
            'average_hits_per_file': round(total_hits / len(cache_files), 2) if cache_files else 0,
            'cache_dir': str(self.cache_dir),
        }

    def clear_cache(self):
        """Clear all cache files"""
        for cache_file in self.cache_dir.glob("*.pkl"):
            cache_file.unlink(missing_ok=True)
        self.metadata_file.unlink(missing_ok=True)
