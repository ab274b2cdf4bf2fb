# -*- coding: utf-8 -*-
"""
Configuration, logging, output paths and decorators.
"""

from axebatch.utils.config_manager import ConfigurationManager, get_config_manager, WCAG_PRESETS
from axebatch.utils.logging_config import get_logger, setup_logging
from axebatch.utils.output_manager import OutputManager
from axebatch.utils.decorators import log_method

__all__ = ['ConfigurationManager', 'get_config_manager', 'WCAG_PRESETS',
           'get_logger', 'setup_logging', 'OutputManager', 'log_method']
