"""Flask web UI for the issue panel."""

import logging
from typing import Any, Optional, Union

from flask import Flask, current_app, g, redirect, render_template_string, request, session, url_for
from flask_wtf.csrf import CSRFError, CSRFProtect
from werkzeug.exceptions import BadRequest, Forbidden, NotFound, Unauthorized
from werkzeug.wrappers import Response

from issuepanel import templates
from issuepanel.actions import ActionRegistry, IssueAction, dispatch_action
from issuepanel.assembler import IssueViewAssembler
from issuepanel.config import Config
from issuepanel.errors import IssuePanelError, NotFoundError
from issuepanel.favorites import FavoriteFilter
from issuepanel.models import DashboardConfiguration, IssueViewModel, Severity, Status
from issuepanel.repository import (
    ActionPlanRepository,
    CharacteristicRepository,
    ComponentRepository,
    FilterRepository,
    IssueRepository,
    RuleRepository,
    UserRepository,
)
from issuepanel.service import IssueService

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config.update(Config.from_env().to_flask_dict())
app.config.update(WTF_CSRF_FIELD_NAME="authenticity_token", WTF_CSRF_HEADERS=["X-CSRF-Token"])

# Every POST route needs the session token, sent in the X-CSRF-Token header
# or the authenticity_token form field
csrf = CSRFProtect(app)

# Plugins register their issue actions here
action_registry = ActionRegistry()

REPOSITORIES = {
    "issues": IssueRepository,
    "components": ComponentRepository,
    "rules": RuleRepository,
    "action_plans": ActionPlanRepository,
    "users": UserRepository,
    "characteristics": CharacteristicRepository,
    "filters": FilterRepository,
}


def repositories() -> dict[str, Any]:
    """Get the repositories of the current request, creating them on first use."""
    repos: Optional[dict[str, Any]] = getattr(g, "repositories", None)
    if repos is None:
        db_path = current_app.config.get("ISSUEPANEL_DB")
        repos = {name: cls(db_path) for name, cls in REPOSITORIES.items()}
        g.repositories = repos
    return repos


def get_service() -> IssueService:
    repos = repositories()
    return IssueService(
        issues=repos["issues"],
        users=repos["users"],
        action_plans=repos["action_plans"],
        components=repos["components"],
        rules=repos["rules"],
        registry=action_registry,
    )


def get_assembler() -> IssueViewAssembler:
    repos = repositories()
    return IssueViewAssembler(
        issues=repos["issues"],
        components=repos["components"],
        rules=repos["rules"],
        action_plans=repos["action_plans"],
        comments=repos["issues"],
        users=repos["users"],
    )


@app.teardown_appcontext
def close_connection(exc: Optional[BaseException]) -> None:
    repos = g.pop("repositories", None)
    if repos:
        repos["issues"].db.close_connection()


def current_login() -> Optional[str]:
    return session.get("login")


@app.context_processor
def inject_globals() -> dict[str, Any]:
    """Inject request-wide values into templates."""
    return {
        "base_url": current_app.config.get("ISSUEPANEL_BASE_URL", ""),
        "current_login": current_login(),
    }


# =============================================================================
# Request verification
# =============================================================================


def is_xhr() -> bool:
    return request.headers.get("X-Requested-With") == "XMLHttpRequest"


def verify_ajax_request() -> None:
    if not is_xhr():
        logger.warning("Rejected non-AJAX request to %s", request.path)
        raise Forbidden("AJAX request required")


def require_login() -> str:
    login = current_login()
    if not login:
        raise Unauthorized("Authentication required")
    return login


def verify_mutation() -> str:
    """Checks shared by every POST route, after the CSRF token; returns the current login."""
    verify_ajax_request()
    return require_login()


def require_parameters(source: Any, *names: str) -> None:
    missing = [name for name in names if not source.get(name)]
    if missing:
        raise BadRequest(f"Missing parameter: {', '.join(missing)}")


@app.errorhandler(IssuePanelError)
def handle_issue_panel_error(error: IssuePanelError) -> tuple[str, int]:
    """Render domain errors as the error fragment."""
    logger.warning("%s on %s: %s", type(error).__name__, request.path, error)
    return render_template_string(templates.ERROR_PARTIAL, errors=error.errors), error.http_status


@app.errorhandler(CSRFError)
def handle_csrf_error(error: CSRFError) -> tuple[str, int]:
    logger.warning("Rejected request to %s: %s", request.path, error.description)
    return render_template_string(templates.ERROR_PARTIAL, errors=[error.description]), 403


# =============================================================================
# Rendering helpers
# =============================================================================


def _issue_context(view: IssueViewModel) -> dict[str, Any]:
    return {
        "view": view,
        "transitions": get_service().available_transitions(view.issue),
        "plugin_actions": [action_registry.get(key) for key in action_registry.keys()],
    }


def _render_issue(issue_key: str) -> str:
    """Re-assemble an issue and render its fragment."""
    view = get_assembler().assemble(issue_key)
    return render_template_string(templates.ISSUE_PARTIAL, **_issue_context(view))


def _render_errors(errors: list[str], status: int) -> tuple[str, int]:
    return render_template_string(templates.ERROR_PARTIAL, errors=errors), status


# =============================================================================
# Issue panel
# =============================================================================


@app.route("/issue/show/<issue_key>")
def show(issue_key: str) -> str:
    """Issue detail: modal, AJAX fragment or full page."""
    view = get_assembler().assemble(issue_key)
    context = _issue_context(view)

    if request.args.get("modal"):
        return render_template_string(templates.SHOW_MODAL_PARTIAL, **context)
    if is_xhr():
        if request.args.get("only_detail"):
            # used when an edition is cancelled and only the issue block is refreshed
            return render_template_string(templates.ISSUE_PARTIAL, **context)
        return render_template_string(templates.SHOW_PARTIAL, **context)
    return render_template_string(templates.SHOW_PAGE, **context)


@app.route("/issue/action_form/<action>")
def action_form(action: str) -> str:
    """Form used to comment, assign, transition, change severity and plan."""
    verify_ajax_request()
    require_parameters(request.args, "issue")

    builtin = IssueAction.lookup(action)
    if builtin is None or not builtin.has_form:
        raise NotFound(f"No form for action: {action}")

    service = get_service()
    issue = service.get_issue_by_key(request.args["issue"])
    repos = repositories()

    return render_template_string(
        templates.ACTION_FORMS[builtin.value],
        issue=issue,
        users=repos["users"].find_active(),
        transitions=service.available_transitions(issue),
        severities=list(Severity),
        action_plans=repos["action_plans"].find_open_by_project(issue.project_key),
    )


@app.route("/issue/do_action/<action>", methods=["POST"])
def do_action(action: str) -> Union[str, tuple[str, int]]:
    """Execute a built-in or plugin action and re-render the issue."""
    login = verify_mutation()
    require_parameters(request.form, "issue")

    issue_key = request.form["issue"]
    result = dispatch_action(get_service(), action, issue_key, request.form, login)

    if result.ok:
        return _render_issue(issue_key)
    return _render_errors(result.errors, result.http_status)


@app.route("/issue/edit_comment_form/<comment_key>")
def edit_comment_form(comment_key: str) -> str:
    verify_ajax_request()
    comment = get_service().find_comment(comment_key)
    return render_template_string(templates.EDIT_COMMENT_FORM, comment=comment)


@app.route("/issue/edit_comment", methods=["POST"])
def edit_comment() -> Union[str, tuple[str, int]]:
    """Edit and save an existing comment."""
    login = verify_mutation()
    require_parameters(request.form, "key")

    result = get_service().edit_comment(request.form["key"], request.form.get("text"), login)

    if result.ok:
        return _render_issue(result.value.issue_key)
    return _render_errors(result.errors, result.http_status)


@app.route("/issue/delete_comment/<comment_key>", methods=["POST"])
def delete_comment(comment_key: str) -> str:
    login = verify_mutation()
    comment = get_service().delete_comment(comment_key, login)
    return _render_issue(comment.issue_key)


@app.route("/issue/create_form")
def create_form() -> str:
    """Form used to create a manual issue."""
    verify_ajax_request()
    require_parameters(request.args, "component")
    return render_template_string(
        templates.CREATE_FORM,
        component=request.args["component"],
        line=request.args.get("line"),
        severities=list(Severity),
    )


@app.route("/issue/create", methods=["POST"])
def create() -> Union[str, tuple[str, int]]:
    """Create a manual issue."""
    login = verify_mutation()

    service = get_service()
    result = service.create(request.form, login)
    if result.ok:
        issue = service.get_issue_by_key(result.value.key)
        return render_template_string(templates.MANUAL_ISSUE_CREATED, issue=issue)
    return render_template_string(templates.RESULT_MESSAGES, result=result), 500


@app.route("/issue/widget_issues_list")
def widget_issues_list() -> str:
    """Issues list of the dashboard widget."""
    repos = repositories()

    snapshot = None
    snapshot_id = request.args.get("snapshot_id", type=int)
    if snapshot_id:
        snapshot = repos["components"].find_snapshot(snapshot_id)
    configuration = DashboardConfiguration(
        period_index=request.args.get("period", type=int), snapshot=snapshot
    )

    issues = []
    if snapshot is not None:
        issues = repos["issues"].search(
            component_key=snapshot.component_key,
            statuses=[s.value for s in Status if s.is_unresolved],
            created_after=configuration.period_date,
            limit=request.args.get("limit", 20, type=int),
        )

    return render_template_string(
        templates.WIDGET_ISSUES_LIST, issues=issues, configuration=configuration
    )


@app.route("/issue/rule/<rule_key>")
def rule(rule_key: str) -> str:
    """Rule description shown in the issue panel."""
    verify_ajax_request()
    repos = repositories()

    found = repos["rules"].find_by_key(rule_key)
    if found is None:
        raise NotFoundError.for_key("Rule", rule_key)

    characteristic = sub_characteristic = None
    if found.debt_characteristic_key:
        characteristics = repos["characteristics"]
        characteristic = characteristics.characteristic_by_key(found.debt_characteristic_key)
        sub_characteristic = characteristics.characteristic_by_key(found.debt_sub_characteristic_key)

    return render_template_string(
        templates.RULE_PARTIAL,
        rule=found,
        characteristic=characteristic,
        sub_characteristic=sub_characteristic,
    )


@app.route("/issue/changelog/<issue_key>")
def changelog(issue_key: str) -> str:
    """Changelog shown in the issue panel."""
    verify_ajax_request()
    service = get_service()
    issue = service.get_issue_by_key(issue_key)
    return render_template_string(
        templates.CHANGELOG_PARTIAL, issue=issue, changelog=service.changelog(issue)
    )


# =============================================================================
# Issue search and favorite filters
# =============================================================================


def _split(value: Optional[str]) -> list[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


@app.route("/issues/search")
def issues_search() -> str:
    """Issues list page."""
    criteria = {
        "component": request.args.get("component"),
        "severities": request.args.get("severities"),
        "statuses": request.args.get("statuses"),
        "assignee": request.args.get("assignee"),
    }

    error = None
    try:
        issues = repositories()["issues"].search(
            component_key=criteria["component"],
            severities=_split(criteria["severities"]),
            statuses=_split(criteria["statuses"]),
            assignee=criteria["assignee"],
            limit=request.args.get("limit", 100, type=int),
        )
    except ValueError as e:
        issues = []
        error = str(e)

    return render_template_string(templates.SEARCH_PAGE, issues=issues, criteria=criteria, error=error)


@app.route("/issues/favorite_filters")
def favorite_filters() -> str:
    """Drop-down listing the favourite filters of the current user."""
    verify_ajax_request()
    login = current_login()
    filters = repositories()["filters"].find_favourites(login) if login else []
    favorite = FavoriteFilter.from_filters(
        filters, base_url=current_app.config.get("ISSUEPANEL_BASE_URL", "")
    )
    return render_template_string(templates.FAVORITE_FILTER_PARTIAL, favorite=favorite)


@app.route("/issues/filter/<int:filter_id>")
def apply_filter(filter_id: int) -> Response:
    """Run a saved filter by redirecting to the search page with its criteria."""
    issue_filter = repositories()["filters"].find_by_id(filter_id)
    if issue_filter is None:
        raise NotFoundError.for_key("Filter", filter_id)
    login = current_login()
    if not issue_filter.shared and (not login or issue_filter.user_login != login):
        raise Forbidden("This filter is private")

    target = url_for("issues_search")
    if issue_filter.query:
        target = f"{target}?{issue_filter.query}"
    return redirect(target)


@app.route("/issues/manage")
def manage_filters() -> str:
    login = require_login()
    filters = repositories()["filters"].find_visible(login)
    return render_template_string(templates.MANAGE_PAGE, filters=filters)


def run_server(
    host: str = "0.0.0.0",
    port: int = 7770,
    debug: bool = False,
) -> None:
    """Run the web server.

    Args:
        host: Host to bind to.
        port: Port to bind to.
        debug: Enable debug mode (uses Flask dev server).
    """
    if debug:
        logger.info("Starting issue panel on http://%s:%s (debug mode with Flask)", host, port)
        app.run(host=host, port=port, debug=True)
    else:
        from waitress import serve

        logger.info("Starting issue panel on http://%s:%s (waitress, 4 threads)", host, port)
        serve(app, host=host, port=port, threads=4)


if __name__ == "__main__":
    run_server(debug=True)
