# dashboard.py
from html import escape
from typing import Optional
from fastapi import FastAPI
from fastapi.responses import HTMLResponse, JSONResponse
from storage import Storage

app = FastAPI()
_db = None

def get_db():
    global _db
    if _db is None:
        _db = Storage()
    return _db

# ---------- Shared UI ----------
BASE_STYLE = """
  body { font-family: Arial, sans-serif; margin: 0; background: #f9f9f9; color: #333; }
  h1 { background: #3F7D3A; color: white; padding: 15px; margin: 0; }
  h2 { margin-top: 30px; color: #3F7D3A; }
  .container { padding: 20px; }
  .navbar { background: #2E5E2A; padding: 10px 20px; display: flex; gap: 20px; }
  .navbar a { color: white; text-decoration: none; font-weight: bold; }
  .navbar a:hover { text-decoration: underline; }
  table { border-collapse: collapse; width: 100%; margin-top: 10px; background: white; }
  th, td { border: 1px solid #ddd; padding: 8px; text-align: left; }
  th { background-color: #3F7D3A; color: white; }
  tr:nth-child(even) { background-color: #f2f2f2; }
  a { color: #2E5E2A; }
  .muted { color: #555; }
"""

def page(title: str, body_html: str) -> str:
    return f"""
    <html>
    <head>
      <title>{title}</title>
      <style>{BASE_STYLE}</style>
    </head>
    <body>
      <h1>{title}</h1>
      <div class="navbar">
        <a href="/">🏠 Runs</a>
        <a href="/config">⚙ Config</a>
      </div>
      <div class="container">
        {body_html}
      </div>
    </body>
    </html>
    """

# ---------- Runs ----------
@app.get("/", response_class=HTMLResponse)
def home():
    rows = get_db().list_runs()

    body = """
      <h2>Recent compilation runs</h2>
      <table>
        <tr><th>Run</th><th>Job</th><th>Polls</th><th>Last state</th><th>Started</th><th>Last seen</th></tr>
    """
    if not rows:
        body += "</table><p class='muted'>No polls recorded yet.</p>"
    else:
        for r in rows:
            body += f"<tr><td><a href='/run/{escape(r['run_id'])}'>{escape(r['run_id'])}</a></td><td>{escape(r['job_id'])}</td><td>{r['polls']}</td><td>{escape(r['last_state'] or '-')}</td><td>{r['started_at']}</td><td>{r['last_seen_at']}</td></tr>"
        body += "</table><p class='muted'>Use the CLI wait-compilation command to start a run.</p>"

    return page("📊 CompOS Job Runs", body)

# ---------- Run detail ----------
@app.get("/run/{run_id}", response_class=HTMLResponse)
def run_detail(run_id: str):
    rows = get_db().list_polls(run_id=run_id, limit=1000)
    if not rows:
        return page("❌ Run not found", f"<p>Run {escape(run_id)} not found.</p>")

    body = f"""
      <h2>Run {escape(run_id)} (job {escape(rows[0]['job_id'])})</h2>
      <table>
        <tr><th>Observed</th><th>Phase</th><th>Poll</th><th>Exit code</th><th>State</th></tr>
    """
    for r in rows:
        body += f"<tr><td>{r['observed_at']}</td><td>{r['phase']}</td><td>{r['iteration'] + 1}</td><td>{r['exit_code']}</td><td>{escape(r['state'] or '-')}</td></tr>"
    body += "</table>"
    return page(f"🔎 Run {escape(run_id)}", body)

# ---------- Polls (JSON) ----------
@app.get("/api/polls", response_class=JSONResponse)
def polls_json(run_id: Optional[str] = None, limit: int = 200):
    rows = get_db().list_polls(run_id=run_id, limit=limit)
    return {"polls": [dict(r) for r in rows]}

# ---------- Config ----------
@app.get("/config", response_class=HTMLResponse)
def config_page():
    rows = get_db().list_config()

    body = """
      <h2>Runtime configuration</h2>
      <table>
        <tr><th>Key</th><th>Value</th><th>Updated</th></tr>
    """
    if not rows:
        body += "</table><p class='muted'>No config entries found.</p>"
    else:
        for r in rows:
            body += f"<tr><td>{escape(r['key'])}</td><td>{escape(r['value'])}</td><td>{r['updated_at']}</td></tr>"
        body += "</table><p class='muted'>Use CLI config set/get to manage values.</p>"

    return page("⚙ Config", body)
