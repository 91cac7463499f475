import marimo

__generated_with = "0.13.10"
app = marimo.App(width="medium", app_title="Shared Notes")


# ---------------------------------------------------------------------------
# Bootstrap: paths, logging
# ---------------------------------------------------------------------------


@app.cell
def _setup():
    import logging
    import os
    import sys
    from pathlib import Path

    _ROOT = Path(__file__).parent.parent
    _SRC = _ROOT / "src"
    _DATA_DIR = _ROOT / "data"

    if str(_SRC) not in sys.path:
        sys.path.insert(0, str(_SRC))

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    # Both databases default to files so a page reload keeps queued and
    # confirmed notes; the env vars still take precedence
    _DATA_DIR.mkdir(exist_ok=True)
    STATE_PATH = os.getenv("SHARED_NOTES_STATE_PATH") or _DATA_DIR / "state.duckdb"
    REMOTE_PATH = os.getenv("SHARED_NOTES_REMOTE_PATH") or _DATA_DIR / "remote.duckdb"

    from shared_notes.engine import NotebookSession
    from shared_notes.ids import parse_notebook_path
    from shared_notes.local import LocalState
    from shared_notes.sync.duckdb_remote import DuckDBRemote
    from shared_notes.sync.http import HttpRemoteClient

    return (
        DuckDBRemote,
        HttpRemoteClient,
        LocalState,
        NotebookSession,
        REMOTE_PATH,
        STATE_PATH,
        os,
        parse_notebook_path,
    )


@app.cell
def _imports():
    import marimo as mo

    return (mo,)


# ---------------------------------------------------------------------------
# Session: one notebook per page, id taken from ?notebook= or minted
# ---------------------------------------------------------------------------


@app.cell
async def _session(
    mo,
    os,
    DuckDBRemote,
    HttpRemoteClient,
    LocalState,
    NotebookSession,
    REMOTE_PATH,
    STATE_PATH,
    parse_notebook_path,
):
    query_params = mo.query_params()

    def _update_location(notebook_id):
        # Rewrites the address bar without reloading the page
        query_params["notebook"] = notebook_id

    remote = HttpRemoteClient() if os.getenv("SHARED_NOTES_API_URL") else DuckDBRemote(REMOTE_PATH)
    local = LocalState(STATE_PATH)

    nb = NotebookSession(
        remote,
        local,
        notebook_id=parse_notebook_path(query_params.get("notebook")),
        on_notebook_created=_update_location,
    )
    await nb.open()
    return local, nb


@app.cell
def _state(mo):
    version = mo.state(0)
    return (version,)


# ---------------------------------------------------------------------------
# Delivery: every local change bumps ``version``, which re-runs this cell
# ---------------------------------------------------------------------------


@app.cell
async def _deliver(nb, version):
    _ = version[0]
    delivered = await nb.sync()
    return (delivered,)


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------


@app.cell
def _notes(mo, nb, version, delivered):
    set_version = version[1]

    def _bump():
        set_version(lambda v: v + 1)

    _badge = {"synced": "✓", "pending": "…", "failed": "⚠"}

    def _note_row(note):
        editor = mo.ui.text_area(
            value=note.content,
            full_width=True,
            rows=3,
            on_change=lambda value, nid=note.id: (nb.edit_note(nid, value), _bump()),
        )
        delete = mo.ui.button(
            label="✕",
            tooltip="Delete note",
            on_click=lambda _, nid=note.id: (nb.delete_note(nid), _bump()),
            kind="danger",
        )
        return mo.hstack(
            [editor, mo.md(_badge[note.sync_state.value]), delete],
            gap="8px",
            align="center",
        )

    add_button = mo.ui.button(
        label="+ Add Note",
        tooltip="Add Note",
        on_click=lambda _: (nb.add_note(), _bump()),
    )

    retry_button = mo.ui.button(
        label="Retry now",
        tooltip="Network is back: deliver queued changes",
        on_click=lambda _: (nb.scheduler.notify_reconnect(), _bump()),
    )

    notes = nb.list_notes()
    notes_panel = mo.vstack(
        [*[_note_row(n) for n in notes], add_button] if notes else [mo.md("_No notes yet._"), add_button],
        gap="6px",
    )
    status = (
        mo.md("_All changes saved._")
        if delivered
        else mo.callout(
            mo.hstack(
                [mo.md("Offline: changes are kept locally and will sync later."), retry_button],
                align="center",
            ),
            kind="warn",
        )
    )
    return notes_panel, status


# ---------------------------------------------------------------------------
# Share + sync diagnostics
# ---------------------------------------------------------------------------


@app.cell
def _share(mo, nb):
    share_panel = mo.hstack(
        [mo.md("**Notebook:**"), mo.ui.text(value=nb.share_text(), label="", disabled=True)],
        gap="8px",
        align="center",
    )
    return (share_panel,)


@app.cell
def _diagnostics(mo, local, nb, delivered):
    _ = delivered
    diagnostics = mo.accordion(
        {
            "Sync status": mo.ui.table(local.sync_summary(nb.notebook_id)),
            "Pending operations": mo.ui.table(local.pending_table(nb.notebook_id)),
        }
    )
    return (diagnostics,)


# ---------------------------------------------------------------------------
# Main layout
# ---------------------------------------------------------------------------


@app.cell
def _main_layout(mo, share_panel, status, notes_panel, diagnostics):
    layout = mo.vstack(
        [mo.md("# Shared Notes"), share_panel, status, mo.divider(), notes_panel, diagnostics],
        gap="8px",
    )
    return (layout,)


@app.cell
def _render(layout):
    layout  # noqa: B018 marimo displays the last expression as cell output
    return


if __name__ == "__main__":
    app.run()
