# -*- coding: utf-8 -*-
"""
axebatch - Batch accessibility auditing with axe-core and Selenium.

Audits a list of URLs against one shared browser session, captures
highlighted screenshot evidence per violation and turns the results into
consolidated HTML reports, JUnit XML, SARIF, Excel and executive summaries.
"""

__title__ = 'axebatch'
__version__ = '1.0.0'
__license__ = 'MIT'
