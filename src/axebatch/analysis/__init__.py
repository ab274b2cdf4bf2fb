# -*- coding: utf-8 -*-
"""
Report consolidation, exports, executive summaries, charts, Excel and PDF.
"""

from axebatch.analysis.consolidator import ReportConsolidator, ViolationGroup, flatten_groups, group_nodes
from axebatch.analysis.document import ConsolidatedReport, render_executive_html, render_html
from axebatch.analysis.exporters import junit_xml, sarif_json, sarif_log
from axebatch.analysis.summary import ExecutiveSummary, category_from_tag, summarize_outcome, summarize_run

__all__ = ['ReportConsolidator', 'ViolationGroup', 'flatten_groups', 'group_nodes',
           'ConsolidatedReport', 'render_executive_html', 'render_html',
           'junit_xml', 'sarif_json', 'sarif_log',
           'ExecutiveSummary', 'category_from_tag', 'summarize_outcome', 'summarize_run']
