"""H5 page served to WeCom's in-app browser (and any desktop browser)."""
from html import escape
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from app.api.deps import get_optional_session
from app.models.hr_models import Session, TicketCategory

router = APIRouter(tags=["Views"])

CATEGORY_LABELS = {
    TicketCategory.HIRING: "Hiring",
    TicketCategory.ONBOARDING: "Onboarding",
    TicketCategory.PERFORMANCE: "Performance",
    TicketCategory.FAIRNESS: "Fairness",
    TicketCategory.OTHER: "Other",
}

_STYLE = """
body{font-family:system-ui,Segoe UI,Arial;max-width:960px;margin:20px auto;padding:0 12px}
.card{background:#fff;padding:16px;border-radius:12px;box-shadow:0 1px 4px rgba(0,0,0,.08);margin:12px 0}
.grid{display:grid;grid-template-columns:repeat(3,1fr);gap:12px}
input,select,textarea,button{font-size:14px;padding:8px;border-radius:8px;border:1px solid #ddd}
button,.btn{background:#111;color:#fff;border-color:#111;cursor:pointer;padding:8px 12px;border-radius:8px;text-decoration:none}
table{width:100%;border-collapse:collapse} td,th{border-bottom:1px solid #eee;padding:8px;text-align:left}
"""


def render_index(session: Optional[Session]) -> str:
    if session:
        who = escape(session.name or session.user_id)
        login = f'<div>Signed in as {who} <a href="/logout">Sign out</a></div>'
    else:
        login = '<a href="/auth/wecom/login" class="btn">Sign in with WeCom</a>'
    options = "".join(
        f'<option value="{c.value}">{label}</option>' for c, label in CATEGORY_LABELS.items()
    )
    return f"""<!DOCTYPE html><html lang="en"><head><meta charset="utf-8" />
<meta name="viewport" content="width=device-width, initial-scale=1" />
<title>HR Ops KPI</title>
<style>{_STYLE}</style></head><body>
<h1>HR Operations</h1>
{login}
<div class="card"><h3>KPIs</h3><div id="kpi" class="grid"></div></div>
<div class="card"><h3>New ticket</h3>
  <form id="newTicket">
    <select name="type">{options}</select>
    <input name="title" placeholder="Title" required />
    <input name="description" placeholder="Description" />
    <label><input type="checkbox" name="keyRole" />Key role</label>
    <button>Submit</button>
  </form>
</div>
<div class="card"><h3>Tickets</h3><table id="list"></table></div>
<div class="card"><h3>eNPS survey</h3>
  <form id="enps"><input type="number" min="0" max="10" name="score" value="10"/> <input name="comment" placeholder="Reason (optional)"/> <button>Submit</button></form>
</div>
<script src="/static/app.js"></script></body></html>"""


@router.get("/", response_class=HTMLResponse)
async def index(session: Optional[Session] = Depends(get_optional_session)):
    return HTMLResponse(render_index(session))
