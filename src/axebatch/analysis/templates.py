# src/axebatch/analysis/templates.py
"""Inline Jinja2 templates for the HTML reports."""

REPORT_STYLES = """
body { font-family: Arial, sans-serif; margin: 0; padding: 20px; color: #212529; background: #fff; }
h1 { font-size: 1.6em; margin-bottom: 4px; }
h2 { font-size: 1.3em; border-bottom: 2px solid #dee2e6; padding-bottom: 4px; margin-top: 28px; }
.context { background: #f8f9fa; padding: 15px; border-left: 4px solid #007bff; margin: 20px 0; }
.context dt { font-weight: bold; float: left; width: 140px; }
.context dd { margin: 0 0 4px 150px; }
.error-section { background: #f8d7da; color: #721c24; padding: 15px; border-radius: 6px; }
.violation { border: 1px solid #dee2e6; border-radius: 6px; margin-bottom: 16px; }
.violation-header { background: #e9ecef; padding: 8px 12px; }
.violation-body { padding: 8px 12px; }
table.nodes { width: 100%; border-collapse: collapse; margin: 5px 0; }
table.nodes th, table.nodes td { border: 1px solid #dee2e6; padding: 3px 6px; vertical-align: top; text-align: left; }
table.nodes code { font-size: 11px; word-break: break-all; }
.example { margin-bottom: 8px; padding: 4px; background: #f8f9fa; border-left: 2px solid #007bff; }
.remaining { margin-top: 8px; font-style: italic; color: #666; }
.remediation ul { margin: 2px 0; padding-left: 16px; }
.screenshot-container { margin: 15px 0; padding: 15px; background: #f8f9fa; border: 1px solid #dee2e6; border-radius: 8px; }
.screenshot-title { font-weight: bold; color: #495057; margin-bottom: 10px; }
.screenshot-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(300px, 1fr)); gap: 15px; }
.screenshot-item { text-align: center; }
.screenshot-item img { max-width: 100%; border: 2px solid #dee2e6; border-radius: 4px; }
.screenshot-caption { font-size: 12px; color: #6c757d; margin-top: 5px; font-style: italic; }
.impact-badge { display: inline-block; padding: 2px 8px; border-radius: 12px; font-size: 11px; font-weight: bold; text-transform: uppercase; }
.badge-critical { background: #f8d7da; color: #721c24; }
.badge-serious { background: #ffe5d0; color: #8a3c00; }
.badge-moderate { background: #fff3cd; color: #856404; }
.badge-minor { background: #d4edda; color: #155724; }
.rule-list { columns: 2; font-size: 13px; }
.score { font-size: 3em; font-weight: bold; }
.cards { display: flex; gap: 12px; flex-wrap: wrap; }
.card { flex: 1; min-width: 120px; padding: 12px; border-radius: 6px; background: #f8f9fa; text-align: center; }
.card .value { font-size: 1.8em; font-weight: bold; }
"""

OUTCOME_REPORT_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
<style>{{ styles|safe }}</style>
</head>
<body>
<h1>{{ title }}</h1>
{% set ctx = report.context %}
<dl class="context">
  <dt>URL</dt><dd><a href="{{ ctx.url }}">{{ ctx.url }}</a></dd>
  <dt>Date</dt><dd>{{ ctx.date.strftime('%Y-%m-%d %H:%M:%S') }}</dd>
  <dt>Status</dt><dd>{{ ctx.status }}</dd>
  {% if ctx.engine_version %}<dt>axe-core</dt><dd>{{ ctx.engine_version }}</dd>{% endif %}
  <dt>Evidence</dt><dd>{{ ctx.evidence_count }} screenshot{{ '' if ctx.evidence_count == 1 else 's' }}</dd>
  <dt>Rule sets</dt>
  <dd>
    axe was running with {{ ctx.rule_sets|length }} rule set{{ '' if ctx.rule_sets|length == 1 else 's' }}
    <ul>
    {% for rule_set in ctx.rule_sets %}
      <li><strong>{{ rule_set.tag|upper }}</strong>: {{ rule_set.description }}</li>
    {% endfor %}
    </ul>
  </dd>
</dl>
{% if report.error_message %}
<h2>Audit error</h2>
<div class="error-section">{{ report.error_message }}</div>
{% else %}
<h2>Violations ({{ report.sections|length }})</h2>
{% for section in report.sections %}
<div class="violation" id="{{ section.anchor }}">
  <div class="violation-header">
    <span class="impact-badge {{ section.impact.style.badge_class }}">{{ section.impact.value }}</span>
    <strong>{{ section.rule_id }}</strong>: {{ section.help or section.description }}
    ({{ section.node_count }} element{{ '' if section.node_count == 1 else 's' }})
  </div>
  <div class="violation-body">
    <p>{{ section.description }} <a href="{{ section.help_url }}">Learn more</a></p>
    <p><small>{{ section.tags|join(', ') }}</small></p>
    <table class="nodes">
      <tr><th>#</th><th>Element</th><th>Fix</th></tr>
      {% for row in section.rows %}
      <tr>
        {% if row.is_group %}
        <td><strong>{{ row.count }}</strong></td>
        <td>
          <p><strong>Multiple similar violations ({{ row.count }} elements)</strong></p>
          {% for example in row.examples %}
          <div class="example">
            <div><strong>Location:</strong> <code>{{ example.selector }}</code></div>
            <div><strong>Element:</strong> <code>{{ example.markup }}</code></div>
          </div>
          {% endfor %}
          {% if row.remaining_label %}<div class="remaining">{{ row.remaining_label }}</div>{% endif %}
        </td>
        {% else %}
        <td>{{ loop.index }}</td>
        <td>
          {% for example in row.examples %}
          <div><strong>Location:</strong> <code>{{ example.selector }}</code></div>
          <div><strong>Element:</strong> <code>{{ example.markup }}</code></div>
          {% endfor %}
        </td>
        {% endif %}
        <td class="remediation">
          <p>{{ row.remediation.heading }}</p>
          {% if row.remediation.items %}
          <ul>{% for item in row.remediation.items %}<li>{{ item }}</li>{% endfor %}</ul>
          {% endif %}
        </td>
      </tr>
      {% endfor %}
    </table>
    {% if section.gallery %}
    <div class="screenshot-container">
      <div class="screenshot-title">Visual Evidence</div>
      <div class="screenshot-grid">
        {% for item in section.gallery %}
        <div class="screenshot-item">
          <img src="{{ item.image_ref }}" alt="Screenshot of accessibility violation">
          <div class="screenshot-caption">
            <span class="impact-badge {{ item.badge_class }}">{{ item.impact.value }}</span><br>
            Element: <code>{{ item.element_selector }}</code>
          </div>
        </div>
        {% endfor %}
      </div>
    </div>
    {% endif %}
  </div>
</div>
{% else %}
<p>No violations found.</p>
{% endfor %}
{% for heading, rules in [('Passes', report.passes), ('Incomplete', report.incomplete), ('Inapplicable', report.inapplicable)] %}
<h2>{{ heading }} ({{ rules|length }})</h2>
{% if rules %}
<ul class="rule-list">
{% for rule in rules %}<li><a href="{{ rule.help_url }}">{{ rule.rule_id }}</a>: {{ rule.description }}</li>
{% endfor %}
</ul>
{% endif %}
{% endfor %}
{% endif %}
</body>
</html>
"""

EXECUTIVE_SUMMARY_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
<style>{{ styles|safe }}</style>
</head>
<body>
<h1>{{ title }}</h1>
<p>Generated {{ generated_at.strftime('%Y-%m-%d %H:%M:%S') }} - {{ summary.pages }} page{{ '' if summary.pages == 1 else 's' }} audited</p>
<div class="cards">
  <div class="card"><div class="score">{{ summary.score }}</div><div>Accessibility score</div></div>
  <div class="card"><div class="value">{{ summary.grade }}</div><div>Grade</div></div>
  <div class="card"><div class="value">{{ summary.violations }}</div><div>Violated rules</div></div>
  <div class="card"><div class="value">{{ summary.passes }}</div><div>Passed rules</div></div>
  <div class="card"><div class="value">{{ summary.incomplete }}</div><div>Needs review</div></div>
</div>
<h2>Severity breakdown</h2>
<table class="nodes">
  <tr><th>Impact</th><th>Affected elements</th></tr>
  {% for impact, count in summary.severity_items %}
  <tr><td><span class="impact-badge {{ impact.style.badge_class }}">{{ impact.value }}</span></td><td>{{ count }}</td></tr>
  {% endfor %}
</table>
{% if chart %}<p><img src="data:image/png;base64,{{ chart }}" alt="Severity breakdown chart" style="max-width: 420px;"></p>{% endif %}
{% if summary.top_categories %}
<h2>Top categories</h2>
<ol>
{% for category in summary.top_categories %}<li>{{ category.name }} ({{ category.count }} issue{{ '' if category.count == 1 else 's' }})</li>
{% endfor %}
</ol>
{% endif %}
<h2>Recommendations</h2>
<ul>
{% for line in summary.recommendations %}<li>{{ line }}</li>
{% endfor %}
</ul>
{% if summary.failed_urls %}
<h2>Pages that could not be audited</h2>
<ul>
{% for url in summary.failed_urls %}<li>{{ url }}</li>
{% endfor %}
</ul>
{% endif %}
</body>
</html>
"""
