# -*- coding: utf-8 -*-
"""
Page auditing: browser session, axe-core adapter, evidence capture and run coordination.
"""

from axebatch.audit.aggregator import ResultAggregator
from axebatch.audit.coordinator import RunCoordinator, RunOptions
from axebatch.audit.driver import BrowserPage, BrowserSession, Rect
from axebatch.audit.evidence import EvidenceCapturer
from axebatch.audit.registry import RunRegistry
from axebatch.audit.rule_engine import AxeRuleEngine

__all__ = ['ResultAggregator', 'RunCoordinator', 'RunOptions', 'BrowserPage',
           'BrowserSession', 'Rect', 'EvidenceCapturer', 'RunRegistry', 'AxeRuleEngine']
