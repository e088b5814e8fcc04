"""
Configuration module for the voice relay.

This module provides centralized configuration management for the entire application,
including constants, logging setup, and environment-based settings.

Key components:
- constants: Application-wide constants, including telephony and engine event names,
  audio framing parameters and storage table names.
- logging_config: A consistent logging infrastructure with console and rotating
  file output.
- settings: The Settings dataclass and load_settings(), which validates the
  environment at startup and raises ConfigurationError when credentials are missing.

Usage examples:
```python
from voice_relay.config.logging_config import configure_logging
from voice_relay.config.settings import load_settings

logger = configure_logging()
settings = load_settings()
logger.info(f"Greeting mode: {settings.greeting_mode}")
```
"""
