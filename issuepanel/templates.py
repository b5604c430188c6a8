"""Jinja templates for the issue panel pages and fragments."""

BASE_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <meta name="csrf-token" content="{{ csrf_token() }}">
    <title>{% block title %}Issues{% endblock %}</title>
    <style>
        :root {
            --bg-primary: #ffffff;
            --bg-secondary: #f3f3f3;
            --border-color: #dddddd;
            --text-primary: #333333;
            --text-muted: #777777;
            --accent-blue: #236a97;
            --severity-blocker: #d4333f;
            --severity-critical: #d4333f;
            --severity-major: #ed7d20;
            --severity-minor: #4b9fd5;
            --severity-info: #4b9fd5;
        }

        body {
            font-family: 'Helvetica Neue', Arial, sans-serif;
            font-size: 13px;
            color: var(--text-primary);
            background-color: var(--bg-primary);
            margin: 0;
        }

        a { color: var(--accent-blue); text-decoration: none; }

        .container { max-width: 1200px; margin: 0 auto; padding: 16px 24px; }
        .header { background-color: var(--bg-secondary); border-bottom: 1px solid var(--border-color); }
        .header a { font-weight: 600; }

        .code-issue { border: 1px solid var(--border-color); margin-bottom: 12px; }
        .code-issue-name { background-color: var(--bg-secondary); padding: 6px 10px; }
        .code-issue-msg { padding: 6px 10px; }
        .code-issue-details { color: var(--text-muted); padding: 0 10px 6px; }
        .code-issue-actions { padding: 6px 10px; border-top: 1px solid var(--border-color); }
        .code-issue-comment { padding: 6px 10px; border-top: 1px dashed var(--border-color); }

        .severity { font-weight: 700; text-transform: uppercase; font-size: 11px; }
        .severity-BLOCKER { color: var(--severity-blocker); }
        .severity-CRITICAL { color: var(--severity-critical); }
        .severity-MAJOR { color: var(--severity-major); }
        .severity-MINOR { color: var(--severity-minor); }
        .severity-INFO { color: var(--severity-info); }

        .error { color: var(--severity-blocker); }
        table.data { border-collapse: collapse; width: 100%; }
        table.data td, table.data th { border-bottom: 1px solid var(--border-color); padding: 4px 8px; text-align: left; }
    </style>
</head>
<body>
    <header class="header">
        <div class="container">
            <a href="{{ base_url }}/issues/search">Issues</a>
            {% if current_login %}<span style="float: right;">{{ current_login }}</span>{% endif %}
        </div>
    </header>
    <main class="container">
        {% block content %}{% endblock %}
    </main>
</body>
</html>
"""

ISSUE_PARTIAL = """
{% set issue = view.issue %}
<div class="code-issue" id="issue-{{ issue.key }}" data-issue-key="{{ issue.key }}">
    <div class="code-issue-name">
        <span class="severity severity-{{ issue.severity.value }}">{{ issue.severity.value }}</span>
        <span class="rule-name">{{ view.rule.name if view.rule else issue.rule_key }}</span>
        <span class="status">{{ issue.status.value }}{% if issue.resolution %} ({{ issue.resolution }}){% endif %}</span>
    </div>
    <div class="code-issue-msg">{{ issue.message or '' }}</div>
    <div class="code-issue-details">
        {% if view.component %}<span class="component">{{ view.component.name }}</span>{% endif %}
        {% if issue.line %}<span class="line">L{{ issue.line }}</span>{% endif %}
        {% if issue.assignee %}
        <span class="assignee">Assigned to {{ view.users[issue.assignee].name if view.users.get(issue.assignee) else issue.assignee }}</span>
        {% endif %}
        {% if issue.reporter %}
        <span class="reporter">Reported by {{ view.users[issue.reporter].name if view.users.get(issue.reporter) else issue.reporter }}</span>
        {% endif %}
        {% if view.action_plan %}<span class="action-plan">Planned for {{ view.action_plan.name }}</span>{% endif %}
        <span>Created {{ issue.created_at.strftime('%Y-%m-%d %H:%M') }}</span>
    </div>

    {% for comment in view.comments %}
    <div class="code-issue-comment" id="comment-{{ comment.key }}" data-comment-key="{{ comment.key }}">
        <b>{{ view.users[comment.user_login].name if view.users.get(comment.user_login) else (comment.user_login or 'Unknown') }}</b>
        <span>{{ comment.created_at.strftime('%Y-%m-%d %H:%M') }}</span>
        <div class="comment-text">{{ comment.text }}</div>
        {% if current_login and comment.user_login == current_login %}
        <a href="#" class="edit-comment" data-url="{{ base_url }}/issue/edit_comment_form/{{ comment.key }}">Edit</a>
        <a href="#" class="delete-comment" data-url="{{ base_url }}/issue/delete_comment/{{ comment.key }}">Delete</a>
        {% endif %}
    </div>
    {% endfor %}

    {% if current_login %}
    <div class="code-issue-actions">
        <a href="#" data-action="comment">Comment</a>
        {% if issue.status.is_unresolved %}
        <a href="#" data-action="assign">Assign</a>
        <a href="#" data-action="severity">Change severity</a>
        <a href="#" data-action="plan">Plan</a>
        {% if issue.action_plan_key %}<a href="#" data-action="unplan">Unplan</a>{% endif %}
        {% endif %}
        {% for transition in transitions %}
        <a href="#" data-action="transition" data-transition="{{ transition.key }}">{{ transition.key }}</a>
        {% endfor %}
        {% for action in plugin_actions %}
        <a href="#" data-action="{{ action.key }}">{{ action.label }}</a>
        {% endfor %}
    </div>
    {% endif %}
</div>
"""

SHOW_PARTIAL = (
    """
<div class="issue-show">
    <div class="source-title">
        {% if view.project %}<span class="project">{{ view.project.name }}</span>{% endif %}
        {% if view.component %}<span class="component-name">{{ view.component.name }}</span>{% endif %}
        {% if view.snapshot %}<span class="snapshot">Analysed {{ view.snapshot.created_at.strftime('%Y-%m-%d %H:%M') }}</span>{% endif %}
    </div>
"""
    + ISSUE_PARTIAL
    + """
</div>
"""
)

SHOW_MODAL_PARTIAL = (
    """
<div class="modal-head"><h2>{{ view.rule.name if view.rule else view.issue.rule_key }}</h2></div>
<div class="modal-body">
"""
    + SHOW_PARTIAL
    + """
</div>
<div class="modal-foot"><a href="#" onclick="return closeModalWindow()">Close</a></div>
"""
)

SHOW_PAGE = BASE_TEMPLATE.replace(
    "{% block title %}Issues{% endblock %}",
    "{% block title %}{{ view.issue.message or view.issue.key }} - Issues{% endblock %}",
).replace("{% block content %}{% endblock %}", "{% block content %}" + SHOW_PARTIAL + "{% endblock %}")

COMMENT_FORM = """
<form method="POST" action="{{ base_url }}/issue/do_action/comment" class="issue-action-form">
    <input type="hidden" name="issue" value="{{ issue.key }}">
    <textarea name="text" rows="4" cols="60"></textarea>
    <input type="submit" value="Comment">
</form>
"""

ASSIGN_FORM = """
<form method="POST" action="{{ base_url }}/issue/do_action/assign" class="issue-action-form">
    <input type="hidden" name="issue" value="{{ issue.key }}">
    <select name="assignee">
        <option value="">Unassigned</option>
        {% for user in users %}
        <option value="{{ user.login }}"{% if user.login == issue.assignee %} selected{% endif %}>{{ user.name }}</option>
        {% endfor %}
    </select>
    <input type="submit" value="Assign">
    {% if current_login and issue.assignee != current_login %}
    <button type="submit" name="me" value="true">Assign to me</button>
    {% endif %}
</form>
"""

TRANSITION_FORM = """
<form method="POST" action="{{ base_url }}/issue/do_action/transition" class="issue-action-form">
    <input type="hidden" name="issue" value="{{ issue.key }}">
    {% for transition in transitions %}
    <label><input type="radio" name="transition" value="{{ transition.key }}"> {{ transition.key }}</label>
    {% else %}
    <p>No transition available.</p>
    {% endfor %}
    <input type="submit" value="Apply">
</form>
"""

SEVERITY_FORM = """
<form method="POST" action="{{ base_url }}/issue/do_action/severity" class="issue-action-form">
    <input type="hidden" name="issue" value="{{ issue.key }}">
    <select name="severity">
        {% for severity in severities %}
        <option value="{{ severity.value }}"{% if severity == issue.severity %} selected{% endif %}>{{ severity.value }}</option>
        {% endfor %}
    </select>
    <input type="submit" value="Change severity">
</form>
"""

PLAN_FORM = """
<form method="POST" action="{{ base_url }}/issue/do_action/plan" class="issue-action-form">
    <input type="hidden" name="issue" value="{{ issue.key }}">
    {% if action_plans %}
    <select name="plan">
        <option value="">Unplanned</option>
        {% for plan in action_plans %}
        <option value="{{ plan.key }}"{% if plan.key == issue.action_plan_key %} selected{% endif %}>{{ plan.name }}{% if plan.deadline %} ({{ plan.deadline.strftime('%Y-%m-%d') }}){% endif %}</option>
        {% endfor %}
    </select>
    <input type="submit" value="Plan">
    {% else %}
    <p>No open action plan for this project.</p>
    {% endif %}
</form>
"""

ACTION_FORMS = {
    "comment": COMMENT_FORM,
    "assign": ASSIGN_FORM,
    "transition": TRANSITION_FORM,
    "severity": SEVERITY_FORM,
    "plan": PLAN_FORM,
}

EDIT_COMMENT_FORM = """
<form method="POST" action="{{ base_url }}/issue/edit_comment" class="edit-comment-form">
    <input type="hidden" name="key" value="{{ comment.key }}">
    <textarea name="text" rows="4" cols="60">{{ comment.text }}</textarea>
    <input type="submit" value="Save">
    <a href="#" class="cancel" data-url="{{ base_url }}/issue/show/{{ comment.issue_key }}?only_detail=true">Cancel</a>
</form>
"""

ERROR_PARTIAL = """
<div class="error">
    <ul>
    {% for error in errors %}
        <li>{{ error }}</li>
    {% endfor %}
    </ul>
</div>
"""

CREATE_FORM = """
<form method="POST" action="{{ base_url }}/issue/create" class="create-issue-form">
    <input type="hidden" name="component" value="{{ component }}">
    {% if line %}<input type="hidden" name="line" value="{{ line }}">{% endif %}
    <input type="text" name="rule" placeholder="manual:rule-key">
    <select name="severity">
        {% for severity in severities %}
        <option value="{{ severity.value }}"{% if severity.value == 'MAJOR' %} selected{% endif %}>{{ severity.value }}</option>
        {% endfor %}
    </select>
    <textarea name="message" rows="3" cols="60"></textarea>
    <input type="submit" value="Create">
</form>
"""

MANUAL_ISSUE_CREATED = """
<div class="manual-issue-created" data-issue-key="{{ issue.key }}">
    Issue created: <a href="{{ base_url }}/issue/show/{{ issue.key }}">{{ issue.message or issue.key }}</a>
</div>
"""

RESULT_MESSAGES = """
<div class="result-messages">
    <ul class="error">
    {% for error in result.errors %}
        <li>{{ error }}</li>
    {% endfor %}
    </ul>
</div>
"""

WIDGET_ISSUES_LIST = """
<div class="widget-issues">
    {% if configuration.period_date %}
    <p class="period">Since {{ configuration.period_date.strftime('%Y-%m-%d') }}</p>
    {% endif %}
    <table class="data">
        <tbody>
        {% for issue in issues %}
        <tr>
            <td><span class="severity severity-{{ issue.severity.value }}">{{ issue.severity.value }}</span></td>
            <td><a href="{{ base_url }}/issue/show/{{ issue.key }}">{{ issue.message or issue.rule_key }}</a></td>
            <td>{{ issue.assignee or '' }}</td>
        </tr>
        {% else %}
        <tr><td colspan="3">No issues</td></tr>
        {% endfor %}
        </tbody>
    </table>
</div>
"""

RULE_PARTIAL = """
<div class="rule-desc">
    <h3>{{ rule.name }}</h3>
    <p class="rule-key">{{ rule.key }}</p>
    {% if characteristic %}
    <p class="characteristic">{{ characteristic.name }}{% if sub_characteristic %} &gt; {{ sub_characteristic.name }}{% endif %}</p>
    {% endif %}
    <div class="description">{{ rule.description or '' }}</div>
</div>
"""

CHANGELOG_PARTIAL = """
<table class="data changelog">
    <tbody>
    <tr>
        <td>{{ issue.created_at.strftime('%Y-%m-%d %H:%M') }}</td>
        <td>{{ issue.reporter or '' }}</td>
        <td>Created</td>
    </tr>
    {% for change in changelog %}
    <tr>
        <td>{{ change.created_at.strftime('%Y-%m-%d %H:%M') }}</td>
        <td>{{ change.user_login or '' }}</td>
        <td>{{ change.field_name }}: {{ change.old_value or '' }} &rarr; {{ change.new_value or '' }}</td>
    </tr>
    {% endfor %}
    </tbody>
</table>
"""

FAVORITE_FILTER_PARTIAL = """
<div class="navigator-filter-details navigator-filter-favorite">
    <ul>
    {% for id, name in favorite.choices_array() %}
        <li><label data-id="{{ id }}"><a href="{{ favorite.apply_url(id) }}">{{ name }}</a></label></li>
    {% endfor %}
    </ul>
    <div class="manage"><label><a href="{{ favorite.manage_link() }}">Manage</a></label></div>
</div>
"""

SEARCH_PAGE = BASE_TEMPLATE.replace(
    "{% block content %}{% endblock %}",
    """{% block content %}
<h1>Issues</h1>
<form method="GET" action="{{ base_url }}/issues/search">
    <input type="text" name="component" value="{{ criteria.component or '' }}" placeholder="Component or project key">
    <input type="text" name="severities" value="{{ criteria.severities or '' }}" placeholder="MAJOR,CRITICAL">
    <input type="text" name="statuses" value="{{ criteria.statuses or '' }}" placeholder="OPEN,REOPENED">
    <input type="text" name="assignee" value="{{ criteria.assignee or '' }}" placeholder="Assignee">
    <input type="submit" value="Search">
</form>
{% if error %}<p class="error">{{ error }}</p>{% endif %}
<table class="data">
    <tbody>
    {% for issue in issues %}
    <tr>
        <td><span class="severity severity-{{ issue.severity.value }}">{{ issue.severity.value }}</span></td>
        <td><a href="{{ base_url }}/issue/show/{{ issue.key }}">{{ issue.message or issue.rule_key }}</a></td>
        <td>{{ issue.component_key }}</td>
        <td>{{ issue.status.value }}</td>
        <td>{{ issue.assignee or '' }}</td>
    </tr>
    {% else %}
    <tr><td colspan="5">No issues found.</td></tr>
    {% endfor %}
    </tbody>
</table>
{% endblock %}""",
)

MANAGE_PAGE = BASE_TEMPLATE.replace(
    "{% block content %}{% endblock %}",
    """{% block content %}
<h1>Manage filters</h1>
<table class="data">
    <tbody>
    {% for issue_filter in filters %}
    <tr>
        <td><a href="{{ base_url }}/issues/filter/{{ issue_filter.id }}">{{ issue_filter.name }}</a></td>
        <td>{{ 'Shared' if issue_filter.shared else 'Private' }}</td>
        <td>{{ issue_filter.user_login or '' }}</td>
    </tr>
    {% else %}
    <tr><td colspan="3">No filters.</td></tr>
    {% endfor %}
    </tbody>
</table>
{% endblock %}""",
)
