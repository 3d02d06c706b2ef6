"""Flask web interface for the Finance Ledger."""

from __future__ import annotations

import datetime as dt
import io
from typing import Any, Dict, List, Mapping, Optional, Sequence

from flask import (
    Flask,
    flash,
    jsonify,
    redirect,
    render_template,
    request,
    send_file,
    url_for,
)

from . import auth
from .analytics import aggregate
from .config import PACKAGE_ROOT, AppConfig
from .data_loader import (
    EXCEL_SUFFIXES,
    EXPORT_FILENAME,
    XLSX_MIMETYPE,
    RecordDraft,
    export_xlsx,
    normalize_rows,
    read_upload,
)
from .errors import StoreError
from .formatting import format_amount, format_date_with_ordinal, format_month_label
from .logging_setup import get_logger
from .models import TYPE_OPTIONS, db
from .reports import build_summary
from .store import RecordStore
from .view import (
    ALL_TYPES,
    SORT_COLUMNS,
    ViewController,
    ViewState,
    after_delete,
    clear_filters,
    first_page,
    last_page,
    next_page,
    previous_page,
    set_page_size,
    toggle_sort,
)

logger = get_logger(__name__)

REQUIRED_FIELDS_MESSAGE = "Name, date and amount are required."


def _records_url(state: ViewState, **extra: Any) -> str:
    params = state.to_params()
    params.update({k: v for k, v in extra.items() if v is not None})
    return url_for("records", **params)


def _safe_next(target: Optional[str]) -> str:
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return url_for("index")


def _form_draft(form: Mapping[str, Any]) -> Optional[RecordDraft]:
    # Record inputs are prefixed; bare name/type carry the table filters.
    if not (form.get("record_amount") or "").strip():
        return None
    return RecordDraft.from_mapping(
        {
            "name": form.get("record_name"),
            "date": form.get("record_date"),
            "type": form.get("record_type") or TYPE_OPTIONS[0],
            "amount": form.get("record_amount"),
        }
    )


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


PAGE_MOVES = {"first": first_page, "prev": previous_page, "next": next_page, "last": last_page}


def _parse_action(action: str, total: int, page_sizes: Sequence[int]) -> Optional[tuple]:
    """Map ``next``, ``sort:amount``, ``size:20``, ``clear`` etc. to ``(transition, *args)``."""
    name, _, arg = action.partition(":")
    if name in PAGE_MOVES:
        return PAGE_MOVES[name], total
    if name == "sort" and arg in SORT_COLUMNS:
        return toggle_sort, arg
    if name == "size" and _to_int(arg) in page_sizes:
        return set_page_size, int(arg)
    if name == "clear":
        return (clear_filters,)
    return None


def create_app(config: Optional[AppConfig] = None, config_path: Optional[str] = None) -> Flask:
    cfg = config or AppConfig.load(config_path)
    app = Flask(__name__, template_folder=str(PACKAGE_ROOT / "templates"))
    app.config.update(
        SECRET_KEY=cfg.secret_key,
        SQLALCHEMY_DATABASE_URI=cfg.database_url,
        ADMIN_PASSWORD_HASH=cfg.admin_password_hash,
        PERMANENT_SESSION_LIFETIME=dt.timedelta(days=365),
    )

    db.init_app(app)
    with app.app_context():
        db.create_all()

    store = RecordStore()
    page_sizes = tuple(cfg.page_size_options)

    def state_from(args: Mapping[str, Any]) -> ViewState:
        return ViewState.from_params(args, page_sizes=page_sizes, default_size=cfg.page_size)

    app.add_template_filter(format_amount, "amount")
    app.add_template_filter(format_date_with_ordinal, "ordinal_date")
    app.add_template_filter(format_month_label, "month_label")

    @app.context_processor
    def inject_session_state() -> Dict[str, Any]:
        return {
            "role": auth.current_role(),
            "theme": auth.current_theme(),
            "type_options": TYPE_OPTIONS,
        }

    @app.route("/login", methods=["GET", "POST"])
    def login():
        if auth.current_role() is not None:
            return redirect(url_for("index"))
        errors: List[str] = []
        if request.method == "POST":
            if auth.verify_admin_password(request.form.get("password") or ""):
                auth.set_role(auth.ADMIN)
                logger.info("Admin signed in")
                return redirect(url_for("index"))
            errors.append("Invalid password")
        return render_template("login.html", errors=errors, admin_enabled=cfg.admin_enabled)

    @app.route("/login/guest", methods=["POST"])
    def login_guest():
        auth.set_role(auth.GUEST)
        return redirect(url_for("index"))

    @app.route("/logout", methods=["POST"])
    def logout():
        auth.set_role(None)
        return redirect(url_for("login"))

    @app.route("/theme", methods=["POST"])
    def theme():
        auth.toggle_theme()
        return redirect(_safe_next(request.form.get("next")))

    @app.route("/")
    @auth.login_required
    def index():
        try:
            rows = store.fetch_all("date,type,amount")
        except StoreError as exc:
            flash(str(exc), "error")
            rows = []
        return render_template("analytics.html", summary=aggregate(rows))

    @app.route("/records")
    @auth.login_required
    def records():
        state = state_from(request.args)
        view = ViewController(store, state)
        if not view.refresh():
            flash(view.error, "error")
        try:
            names = store.distinct_names()
        except StoreError as exc:
            logger.warning("Name list unavailable: %s", exc)
            names = []

        edit_row = None
        edit_id = _to_int(request.args.get("edit"), 0)
        if edit_id and auth.current_role() == auth.ADMIN:
            edit_row = next((r for r in view.rows if r["id"] == edit_id), None)
            if edit_row is None:
                try:
                    found = store.select("*").eq("id", edit_id).execute().rows
                except StoreError as exc:
                    flash(str(exc), "error")
                    found = []
                edit_row = found[0] if found else None

        nav = {
            "first": _records_url(first_page(state)),
            "prev": _records_url(previous_page(state)),
            "next": _records_url(next_page(state, view.total)),
            "last": _records_url(last_page(state, view.total)),
        }
        return render_template(
            "records.html",
            view=view,
            state=state,
            state_params=state.to_params(),
            names=names,
            all_types=ALL_TYPES,
            nav=nav,
            sort_urls={c: _records_url(toggle_sort(state, c)) for c in SORT_COLUMNS},
            size_urls={n: _records_url(set_page_size(state, n)) for n in page_sizes},
            clear_url=_records_url(clear_filters(state)),
            edit_row=edit_row,
            cancel_edit_url=_records_url(state),
        )

    @app.route("/records", methods=["POST"])
    @auth.admin_required("create rows")
    def create_record():
        state = state_from(request.form)
        draft = _form_draft(request.form)
        if draft is None:
            flash(REQUIRED_FIELDS_MESSAGE, "error")
            return redirect(_records_url(state))
        try:
            store.insert(draft)
        except StoreError as exc:
            flash(str(exc), "error")
            return redirect(_records_url(state))
        return redirect(_records_url(first_page(state)))

    @app.route("/records/<int:record_id>", methods=["POST"])
    @auth.admin_required("edit rows")
    def update_record(record_id: int):
        state = state_from(request.form)
        draft = _form_draft(request.form)
        if draft is None:
            flash(REQUIRED_FIELDS_MESSAGE, "error")
            return redirect(_records_url(state, edit=record_id))
        try:
            store.update(draft.as_dict(), record_id)
        except StoreError as exc:
            flash(str(exc), "error")
            return redirect(_records_url(state, edit=record_id))
        return redirect(_records_url(state))

    @app.route("/records/<int:record_id>/delete", methods=["POST"])
    @auth.admin_required("delete rows")
    def delete_record(record_id: int):
        state = state_from(request.form)
        try:
            store.delete(record_id)
        except StoreError as exc:
            flash(str(exc), "error")
            return redirect(_records_url(state))
        rows_on_page = _to_int(request.form.get("rows_on_page"), 1)
        return redirect(_records_url(after_delete(state, rows_on_page)))

    @app.route("/records/import", methods=["POST"])
    @auth.admin_required("import rows")
    def import_records():
        state = state_from(request.form)
        file = request.files.get("file")
        if not file or not file.filename:
            flash("Please choose a CSV or Excel file to import.", "error")
            return redirect(_records_url(state))
        try:
            parsed = read_upload(file.filename, file.read())
        except ValueError as exc:
            flash(str(exc), "error")
            return redirect(_records_url(state))
        if not parsed:
            flash("No rows found in file", "error")
            return redirect(_records_url(state))
        drafts = normalize_rows(parsed)
        if not drafts:
            flash("No valid rows to import", "error")
            return redirect(_records_url(state))
        try:
            store.insert(drafts)
        except StoreError as exc:
            flash(str(exc), "error")
            return redirect(_records_url(state))
        source = " from Excel" if file.filename.lower().endswith(EXCEL_SUFFIXES) else ""
        logger.info("Imported %d rows from %s", len(drafts), file.filename)
        flash(f"Imported {len(drafts)} rows{source}", "info")
        return redirect(_records_url(first_page(state)))

    @app.route("/records/export")
    @auth.login_required
    def export_records():
        try:
            rows = store.fetch_all()
        except StoreError as exc:
            flash(str(exc), "error")
            return redirect(url_for("records"))
        if not rows:
            flash("No rows to export", "error")
            return redirect(url_for("records"))
        logger.info("Exporting %d rows", len(rows))
        return send_file(
            io.BytesIO(export_xlsx(rows)),
            download_name=EXPORT_FILENAME,
            as_attachment=True,
            mimetype=XLSX_MIMETYPE,
        )

    @app.route("/api/records")
    @auth.login_required
    def api_records():
        view = ViewController(store, state_from(request.args))
        if not view.refresh():
            return jsonify({"error": view.error}), 502
        action = request.args.get("action")
        if action:
            step = _parse_action(action, view.total, page_sizes)
            if step is None:
                return jsonify({"error": f"Unknown action: {action}"}), 400
            view.dispatch(*step)
            if view.error:
                return jsonify({"error": view.error}), 502
        return jsonify(
            {
                "state": view.state.to_params(),
                "rows": view.visible,
                "total": view.total,
                "page": view.state.page.index,
                "page_size": view.state.page.size,
                "page_count": view.page_count,
                "page_total": view.page_total,
                "has_previous": view.has_previous,
                "has_next": view.has_next,
                "totals": view.totals.as_dict(),
            }
        )

    @app.route("/api/summary")
    @auth.login_required
    def api_summary():
        try:
            rows = store.fetch_all("date,type,amount")
        except StoreError as exc:
            return jsonify({"error": str(exc)}), 502
        return jsonify(build_summary(rows))

    return app
