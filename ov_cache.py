#!/usr/bin/env python3
"""
OV Core - Content Cache Module
==============================
Copyright (c) 2025 PNGN-Tec LLC

Parsed Line Cache
=================
Maps line numbers to parsed cell lists so that redrawing a screen does not
re-parse lines that were already shown.

Core Features
=============
- Bounded by a total cost budget, not by entry count
- Frequency-aware eviction: lines that are revisited while scrolling
  survive one-off reads
- Access frequencies remembered across evictions and aged over time
- Thread-safe; clear() swaps in empty tables in constant time

Entries are soft state. A miss is never an error: the caller parses the
line again and stores the result.

Eviction Strategies
===================
- LFU (default): among the sample_size least recently used entries, evict
  the one with the lowest access frequency (oldest wins ties)
- LRU: evict the least recently used entry
- FIFO: evict the oldest inserted entry
"""

import threading
import logging
from dataclasses import dataclass
from itertools import islice
from typing import Any, Dict, Hashable, Optional, Tuple, Union
from collections import OrderedDict

from ov_config import CacheStrategy, get_cache_config

# Configure logging
logger = logging.getLogger('ov_cache')

# Frequencies are halved after this many increments per tracked counter
AGING_FACTOR = 10


@dataclass
class CacheEntry:
    """Cached value and the cost it was charged."""
    value: Any
    cost: int


class ContentCache:
    """
    Thread-safe cost-bounded cache with frequency-aware eviction.

    Attributes:
        stats: Dictionary of hit/miss/eviction counters
    """

    def __init__(self,
                 max_cost: Optional[int] = None,
                 num_counters: Optional[int] = None,
                 strategy: Optional[CacheStrategy] = None,
                 sample_size: Optional[int] = None,
                 enable_cache: Optional[bool] = None):
        """
        Initialize content cache.

        Args:
            max_cost: Total cost budget (uses config if None)
            num_counters: Maximum number of keys with tracked frequency
            strategy: Eviction strategy
            sample_size: Candidates examined per LFU eviction
            enable_cache: Whether to store anything at all
        """
        cache_config = get_cache_config()

        self._max_cost = max_cost if max_cost is not None else cache_config.max_cost
        self._num_counters = num_counters if num_counters is not None else cache_config.num_counters
        self._strategy = strategy if strategy is not None else cache_config.eviction_strategy
        self._sample_size = sample_size if sample_size is not None else cache_config.sample_size
        self._enabled = enable_cache if enable_cache is not None else cache_config.enable_caching

        if self._max_cost <= 0:
            raise ValueError("Cache cost budget must be positive")

        self._entries = OrderedDict()
        self._frequency = {}
        self._increments = 0
        self._total_cost = 0
        self._lock = threading.Lock()

        self.stats = {
            'cache_hits': 0,
            'cache_misses': 0,
            'sets': 0,
            'rejected': 0,
            'cache_evictions': 0,
            'clears': 0,
        }

        logger.info(f"ContentCache initialized: max_cost={self._max_cost}, "
                   f"counters={self._num_counters}, strategy={self._strategy.value}, "
                   f"enabled={self._enabled}")

    @property
    def max_cost(self) -> int:
        return self._max_cost

    @property
    def strategy(self) -> CacheStrategy:
        return self._strategy

    def get(self, key: Hashable) -> Tuple[Any, bool]:
        """
        Look up a key.

        Returns:
            (value, True) on a hit, (None, False) on a miss
        """
        if not self._enabled:
            return None, False

        with self._lock:
            self._record_access(key)
            entry = self._entries.get(key)
            if entry is None:
                self.stats['cache_misses'] += 1
                return None, False
            if self._strategy is not CacheStrategy.FIFO:
                self._entries.move_to_end(key)
            self.stats['cache_hits'] += 1
            return entry.value, True

    def set(self, key: Hashable, value: Any, cost: int = 1) -> bool:
        """
        Store a value, evicting others until the budget allows it.

        Returns:
            False if the value was not stored (cost above the budget or
            caching disabled)
        """
        if not self._enabled:
            return False

        with self._lock:
            if cost > self._max_cost:
                self.stats['rejected'] += 1
                logger.debug(f"Rejected key {key!r}: cost {cost} exceeds budget {self._max_cost}")
                return False

            previous = self._entries.pop(key, None)
            if previous is not None:
                self._total_cost -= previous.cost
            else:
                self._record_access(key)

            while self._entries and self._total_cost + cost > self._max_cost:
                self._evict_one()

            self._entries[key] = CacheEntry(value=value, cost=cost)
            self._total_cost += cost
            self.stats['sets'] += 1
            return True

    def delete(self, key: Hashable):
        """Remove a key if present."""
        with self._lock:
            entry = self._entries.pop(key, None)
            if entry is not None:
                self._total_cost -= entry.cost

    def clear(self):
        """Drop every entry and all frequency history."""
        with self._lock:
            self._entries = OrderedDict()
            self._frequency = {}
            self._increments = 0
            self._total_cost = 0
            self.stats['clears'] += 1
        logger.debug("Content cache cleared")

    def set_max_cost(self, max_cost: int):
        """Change the budget at runtime, evicting down to it."""
        if max_cost <= 0:
            raise ValueError("Cache cost budget must be positive")
        with self._lock:
            self._max_cost = max_cost
            while self._entries and self._total_cost > self._max_cost:
                self._evict_one()
        logger.info(f"Content cache budget set to {max_cost}")

    def frequency(self, key: Hashable) -> int:
        """Current (aged) access frequency of a key."""
        with self._lock:
            return self._frequency.get(key, 0)

    def _record_access(self, key: Hashable):
        count = self._frequency.get(key)
        if count is None:
            if len(self._frequency) >= self._num_counters:
                return
            count = 0
        self._frequency[key] = count + 1
        self._increments += 1
        if self._increments >= self._num_counters * AGING_FACTOR:
            self._age()

    def _age(self):
        """Halve every frequency so stale popularity decays."""
        self._frequency = {
            key: count // 2
            for key, count in self._frequency.items()
            if count // 2 > 0
        }
        self._increments = 0

    def _evict_one(self):
        if self._strategy is CacheStrategy.LFU:
            candidates = islice(self._entries, self._sample_size)
            victim = min(candidates, key=lambda k: self._frequency.get(k, 0))
        else:
            victim = next(iter(self._entries))
        entry = self._entries.pop(victim)
        self._total_cost -= entry.cost
        self.stats['cache_evictions'] += 1

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._entries

    def get_stats(self) -> Dict[str, Union[int, float, str]]:
        """
        Get cache statistics.

        Returns:
            Counters plus cache_hit_rate, cache_entries, total_cost,
            max_cost and strategy
        """
        with self._lock:
            stats = self.stats.copy()
            stats['cache_entries'] = len(self._entries)
            stats['total_cost'] = self._total_cost
            stats['max_cost'] = self._max_cost
            stats['strategy'] = self._strategy.value
            stats['cache_enabled'] = self._enabled

        total_requests = stats['cache_hits'] + stats['cache_misses']
        if total_requests > 0:
            stats['cache_hit_rate'] = stats['cache_hits'] / total_requests
        else:
            stats['cache_hit_rate'] = 0.0

        return stats
