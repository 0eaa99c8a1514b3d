#!/usr/bin/env python3
"""
OV Core - Configuration Module
==============================
Copyright (c) 2025 PNGN-Tec LLC

Centralized Configuration System
================================
Complete configuration for the pager rendering core including:
- Content cache budget and eviction strategy
- Parser settings (tab width, overstrike styles, memo sizes)
- Line buffer reader settings
- Logging setup

Configuration Overview
======================
Every component reads its defaults from here when constructed without
explicit arguments. Values can be overridden through OV_* environment
variables and replaced at runtime with reload_config(); registered
callbacks receive (old_config, new_config) so that, for example, a line
buffer can drop cached cells when the tab width changes.
"""

import threading
import logging
import os
from typing import Optional, Callable
from dataclasses import dataclass, field
from enum import Enum

# Configure logging
logger = logging.getLogger('ov_config')

# ============================================================================
# CONFIGURATION ENUMS
# ============================================================================

class CacheStrategy(Enum):
    """Cache eviction strategies"""
    LRU = "lru"
    LFU = "lfu"
    FIFO = "fifo"


# ============================================================================
# CACHE CONFIGURATION
# ============================================================================

@dataclass
class CacheConfig:
    """
    Content cache configuration parameters.

    Attributes:
        max_cost: Total cost budget of the cache (one line costs 1)
        num_counters: Number of keys whose access frequency is tracked
        sample_size: Eviction candidates examined by the LFU strategy
        eviction_strategy: Strategy for cache eviction
        enable_caching: Master switch for caching
    """

    max_cost: int = 1000
    num_counters: int = 10000
    sample_size: int = 5

    # Strategy
    eviction_strategy: CacheStrategy = CacheStrategy.LFU

    # Feature flags
    enable_caching: bool = True

    def validate(self) -> bool:
        """Validate cache configuration"""
        if self.max_cost <= 0:
            raise ValueError("Cache cost budget must be positive")
        if self.num_counters <= 0:
            raise ValueError("Frequency counter count must be positive")
        if self.sample_size <= 0:
            raise ValueError("Eviction sample size must be positive")
        return True


# ============================================================================
# PARSER CONFIGURATION
# ============================================================================

@dataclass
class ParserConfig:
    """
    Line parser configuration.

    Tab width is positive to expand to tab stops, negative to show tabs
    literally as a reversed "\\t", and zero to strip them.
    """

    tab_width: int = 8

    # SGR parameter strings applied to backspace overstrike
    overstrike_sgr: str = "1"
    overline_sgr: str = "4"

    # Memo sizes
    style_cache_size: int = 1024
    width_cache_size: int = 4096

    def validate(self) -> bool:
        """Validate parser configuration"""
        if self.style_cache_size <= 0:
            raise ValueError("Style cache size must be positive")
        if self.width_cache_size <= 0:
            raise ValueError("Width cache size must be positive")
        return True


# ============================================================================
# MODEL CONFIGURATION
# ============================================================================

@dataclass
class ModelConfig:
    """Line buffer reader settings"""

    # Lines read synchronously before handing off to the reader thread
    before_size: int = 1000

    reader_join_timeout: float = 5.0

    def validate(self) -> bool:
        """Validate model configuration"""
        if self.before_size < 0:
            raise ValueError("Initial read size must not be negative")
        if self.reader_join_timeout <= 0:
            raise ValueError("Reader join timeout must be positive")
        return True


# ============================================================================
# MAIN CONFIGURATION CLASS
# ============================================================================

@dataclass
class CoreConfig:
    """Complete system configuration"""

    # Sub-configurations
    cache: CacheConfig = field(default_factory=CacheConfig)
    parser: ParserConfig = field(default_factory=ParserConfig)
    model: ModelConfig = field(default_factory=ModelConfig)

    # System-wide settings
    debug_mode: bool = False
    log_level: str = "INFO"

    def validate(self) -> bool:
        """Validate entire configuration"""
        self.cache.validate()
        self.parser.validate()
        self.model.validate()
        if logging.getLevelName(self.log_level.upper()) not in (
            logging.DEBUG, logging.INFO, logging.WARNING,
            logging.ERROR, logging.CRITICAL,
        ):
            raise ValueError(f"Unknown log level: {self.log_level}")
        return True


# ============================================================================
# CONFIGURATION MANAGER (SINGLETON)
# ============================================================================

class ConfigurationManager:
    """
    Singleton configuration manager with runtime reloading.
    Thread-safe management of global configuration with change notifications.
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._config = CoreConfig()
        self._callbacks = []
        self._config_lock = threading.RLock()
        self._load_environment_overrides(self._config)

        self._initialized = True
        logger.info("Configuration manager initialized")

    @staticmethod
    def _load_environment_overrides(config: CoreConfig):
        """Load configuration overrides from environment variables"""

        # Cache settings
        if 'OV_CACHE_MAX_COST' in os.environ:
            config.cache.max_cost = int(os.environ['OV_CACHE_MAX_COST'])
        if 'OV_CACHE_COUNTERS' in os.environ:
            config.cache.num_counters = int(os.environ['OV_CACHE_COUNTERS'])
        if 'OV_CACHE_STRATEGY' in os.environ:
            config.cache.eviction_strategy = CacheStrategy(os.environ['OV_CACHE_STRATEGY'].lower())

        # Parser settings
        if 'OV_TAB_WIDTH' in os.environ:
            config.parser.tab_width = int(os.environ['OV_TAB_WIDTH'])
        if 'OV_OVERSTRIKE_STYLE' in os.environ:
            config.parser.overstrike_sgr = os.environ['OV_OVERSTRIKE_STYLE']
        if 'OV_OVERLINE_STYLE' in os.environ:
            config.parser.overline_sgr = os.environ['OV_OVERLINE_STYLE']

        # Model settings
        if 'OV_BEFORE_SIZE' in os.environ:
            config.model.before_size = int(os.environ['OV_BEFORE_SIZE'])

        # Debug mode
        if 'OV_DEBUG' in os.environ:
            config.debug_mode = os.environ['OV_DEBUG'].lower() in ('true', '1', 'yes')
        if 'OV_LOG_LEVEL' in os.environ:
            config.log_level = os.environ['OV_LOG_LEVEL'].upper()

    @property
    def config(self) -> CoreConfig:
        """Get current configuration"""
        with self._config_lock:
            return self._config

    def reload(self, new_config: Optional[CoreConfig] = None) -> bool:
        """
        Reload configuration and notify callbacks.

        Args:
            new_config: New configuration to apply (fresh defaults plus
                environment overrides if None)

        Returns:
            True if reload successful
        """
        with self._config_lock:
            old_config = self._config

            try:
                if new_config is None:
                    new_config = CoreConfig()
                    self._load_environment_overrides(new_config)
                new_config.validate()
                self._config = new_config
            except ValueError as e:
                logger.error(f"Configuration reload failed: {e}")
                self._config = old_config
                return False

            self._notify_callbacks(old_config, self._config)

        logger.info("Configuration reloaded successfully")
        return True

    def register_callback(self, callback: Callable[[CoreConfig, CoreConfig], None]):
        """
        Register callback for configuration changes.

        Args:
            callback: Function called with (old_config, new_config)
        """
        with self._config_lock:
            self._callbacks.append(callback)

    def unregister_callback(self, callback: Callable):
        """Remove a registered callback"""
        with self._config_lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def _notify_callbacks(self, old_config: CoreConfig, new_config: CoreConfig):
        """Notify all registered callbacks of configuration change"""
        for callback in list(self._callbacks):
            try:
                callback(old_config, new_config)
            except Exception as e:
                logger.error(f"Callback notification failed: {e}")


# ============================================================================
# PUBLIC API FUNCTIONS
# ============================================================================

_manager = ConfigurationManager()

def get_config() -> CoreConfig:
    """Get current system configuration"""
    return _manager.config

def reload_config(new_config: Optional[CoreConfig] = None) -> bool:
    """Reload system configuration"""
    return _manager.reload(new_config)

def register_config_callback(callback: Callable[[CoreConfig, CoreConfig], None]):
    """Register for configuration change notifications"""
    _manager.register_callback(callback)

def unregister_config_callback(callback: Callable):
    """Unregister a configuration change callback"""
    _manager.unregister_callback(callback)

def get_cache_config() -> CacheConfig:
    """Get cache configuration"""
    return _manager.config.cache

def get_parser_config() -> ParserConfig:
    """Get parser configuration"""
    return _manager.config.parser

def get_model_config() -> ModelConfig:
    """Get line buffer configuration"""
    return _manager.config.model

def configure_logging(config: Optional[CoreConfig] = None):
    """
    Apply the configured log level to the root logger.

    Debug mode forces DEBUG regardless of log_level.
    """
    config = config or _manager.config
    level = logging.DEBUG if config.debug_mode else getattr(logging, config.log_level.upper())
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(name)s %(levelname)s: %(message)s',
    )
    logging.getLogger().setLevel(level)
    logger.debug(f"Logging configured at {logging.getLevelName(level)}")
