from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from flask import (
    Flask,
    Response,
    current_app,
    flash,
    g,
    jsonify,
    redirect,
    render_template,
    request,
    session,
    url_for,
)
from flask.logging import default_handler

from .aggregation import format_hours, monthly_total, weekly_totals
from .calendar_grid import WEEKEND_INDICES, generate_calendar
from .config import ENV_PREFIX, DefaultConfig
from .entries import (
    ADD,
    CLEAR,
    DELETE,
    EntryAction,
    EntryListState,
    EntryListStore,
    from_dict as entry_from_dict,
    validate as validate_entry,
)
from .exporters import render_entries_csv
from .navigation import MonthCursor, current_month, cursor_from_args, next_month, prev_month
from .session import CalendarTracker, NotLoggedInError, SessionState
from .storage import (
    ObjectStore,
    SessionKeyValueStore,
    SqliteKeyValueStore,
    StorageError,
    init_storage,
)


def create_app(test_config: Optional[Mapping[str, Any]] = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(DefaultConfig)
    app.config.from_prefixed_env(ENV_PREFIX)
    if test_config:
        app.config.update(test_config)

    configure_logging(app)
    app.jinja_env.filters["format_hours"] = format_hours

    Path(app.config["DATABASE"]).parent.mkdir(parents=True, exist_ok=True)

    @app.before_request
    def load_stores() -> None:
        g.db = get_db()
        g.entry_store = EntryListStore(
            SqliteKeyValueStore(g.db), app.config["ENTRIES_STORAGE_KEY"]
        )
        g.tracker = CalendarTracker(
            ObjectStore(g.db),
            SessionKeyValueStore(session),
            app.config["REMEMBERED_USER_KEY"],
        )

    @app.teardown_appcontext
    def close_db(exception: Optional[BaseException]) -> None:  # pragma: no cover - teardown
        db = g.pop("db", None)
        if db is not None:
            db.close()

    register_routes(app)
    register_error_handlers(app)
    with app.app_context():
        init_db()
    return app


def configure_logging(app: Flask) -> None:
    package_logger = logging.getLogger("hours_tracker")
    if default_handler not in package_logger.handlers:
        package_logger.addHandler(default_handler)
    package_logger.setLevel(app.config["LOG_LEVEL"])


def get_db() -> sqlite3.Connection:
    if "db" not in g:
        conn = sqlite3.connect(current_app.config["DATABASE"])
        conn.row_factory = sqlite3.Row
        g.db = conn
    return g.db


def init_db() -> None:
    conn = sqlite3.connect(current_app.config["DATABASE"])
    try:
        init_storage(conn, current_app.config["OBJECT_STORE_VERSION"])
    finally:
        conn.close()


def flash_notice(state: EntryListState) -> None:
    if state.notice is not None:
        flash(state.notice.message, state.notice.category)


def register_routes(app: Flask) -> None:
    @app.route("/")
    def index():
        return render_template("index.html")

    @app.route("/entries", methods=["GET", "POST"])
    def entries():
        if request.method == "POST":
            entry = entry_from_dict(request.form)
            state = g.entry_store.dispatch(EntryAction(ADD, {"entry": entry}))
            flash_notice(state)
            if state.accepted:
                current_app.logger.info("Entry added for %s on %s", entry.employee_name, entry.date)
                return redirect(url_for("entries"))
            return render_template("entries.html", entries=state.entries, form=request.form)

        state = g.entry_store.load()
        return render_template("entries.html", entries=state.entries, form={})

    @app.route("/entries/clear", methods=["POST"])
    def clear_entries():
        flash_notice(g.entry_store.dispatch(EntryAction(CLEAR)))
        return redirect(url_for("entries"))

    @app.route("/entries/<int:index>/delete", methods=["POST"])
    def delete_entry(index: int):
        flash_notice(g.entry_store.dispatch(EntryAction(DELETE, {"index": index})))
        return redirect(url_for("entries"))

    @app.route("/entries.csv")
    def export_entries():
        state = g.entry_store.load()
        return Response(
            render_entries_csv(state.entries),
            mimetype="text/csv",
            headers={"Content-Disposition": "attachment; filename=hours.csv"},
        )

    @app.route("/api/entries", methods=["GET"])
    def api_entries():
        state = g.entry_store.load()
        return jsonify([entry.to_record() for entry in state.entries])

    @app.route("/api/entries", methods=["POST"])
    def api_add_entry():
        payload = request.get_json(silent=True)
        entry = entry_from_dict(payload if isinstance(payload, dict) else {})
        problems = validate_entry(entry)
        if problems:
            return jsonify({"error": "All fields are required.", "problems": problems}), 400
        state = g.entry_store.dispatch(EntryAction(ADD, {"entry": entry}))
        return jsonify([e.to_record() for e in state.entries]), 201

    @app.route("/api/entries/<int:index>", methods=["DELETE"])
    def api_delete_entry(index: int):
        state = g.entry_store.dispatch(EntryAction(DELETE, {"index": index}))
        if not state.accepted:
            return jsonify({"error": state.notice.message}), 404
        return jsonify([e.to_record() for e in state.entries])

    @app.route("/calendar")
    def calendar_view():
        cursor = cursor_from_args(request.args)
        state = g.tracker.restore(cursor)
        if not state.logged_in:
            return render_template("login.html", cursor=cursor)

        weeks = generate_calendar(cursor.year, cursor.month)
        totals = weekly_totals(weeks, state.hours)
        return render_template(
            "calendar.html",
            user=state,
            cursor=cursor,
            rows=list(zip(weeks, totals)),
            month_total=monthly_total(cursor.year, cursor.month, state.hours),
            prev_cursor=prev_month(cursor),
            next_cursor=next_month(cursor),
            weekend_indices=WEEKEND_INDICES,
            weekday_names=("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"),
        )

    @app.route("/login", methods=["POST"])
    def login():
        cursor = cursor_from_args(request.form)
        state = g.tracker.login(SessionState(), request.form.get("username", ""), cursor)
        if state.logged_in:
            current_app.logger.info("User %r logged in", state.username)
        return redirect(_calendar_target(cursor))

    @app.route("/logout", methods=["POST"])
    def logout():
        cursor = cursor_from_args(request.form)
        g.tracker.logout(g.tracker.restore(cursor))
        return redirect(_calendar_target(cursor))

    @app.route("/calendar/hours", methods=["POST"])
    def save_day_hours():
        wants_json = request.is_json
        data = (request.get_json(silent=True) or {}) if wants_json else request.form
        if not hasattr(data, "get"):
            return _hours_error("Invalid request.", current_month(), wants_json)
        cursor = cursor_from_args(data)
        state = g.tracker.restore(cursor)
        try:
            day = int(str(data.get("day", "")))
        except ValueError:
            return _hours_error("Invalid day.", cursor, wants_json)

        try:
            state = g.tracker.set_day_hours(state, cursor, day, data.get("hours"))
        except NotLoggedInError as exc:
            if wants_json:
                return jsonify({"error": str(exc)}), 401
            flash(str(exc), "warning")
            return redirect(_calendar_target(cursor))
        except ValueError as exc:
            return _hours_error(str(exc), cursor, wants_json)

        if wants_json:
            return jsonify(hours_payload(state, cursor))
        return redirect(_calendar_target(cursor))

    @app.route("/api/hours", methods=["GET"])
    def api_hours():
        cursor = cursor_from_args(request.args)
        state = g.tracker.restore(cursor)
        if not state.logged_in:
            return jsonify({"error": "Not logged in"}), 401
        return jsonify(hours_payload(state, cursor))


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(StorageError)
    def storage_failed(exc: StorageError):
        current_app.logger.error("Storage failure on %s: %s", request.path, exc, exc_info=exc)
        message = "Your hours could not be saved or loaded. Please try again."
        if request.path.startswith("/api/") or request.is_json:
            return jsonify({"error": message}), 500
        return render_template("error.html", message=message), 500


def hours_payload(state: SessionState, cursor: MonthCursor) -> Dict[str, object]:
    weeks = generate_calendar(cursor.year, cursor.month)
    return {
        "username": state.username,
        "year": cursor.year,
        "month": cursor.month,
        "hours": state.hours,
        "weeks": weeks,
        "week_totals": weekly_totals(weeks, state.hours),
        "month_total": monthly_total(cursor.year, cursor.month, state.hours),
    }


def _calendar_target(cursor: MonthCursor) -> str:
    return url_for("calendar_view", year=cursor.year, month=cursor.month)


def _hours_error(message: str, cursor: MonthCursor, wants_json: bool):
    if wants_json:
        return jsonify({"error": message}), 400
    flash(message, "error")
    return redirect(_calendar_target(cursor))


if __name__ == "__main__":
    application = create_app()
    application.run(debug=True, host="127.0.0.1", port=5001)
