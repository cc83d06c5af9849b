"""Dashboard HTML with inline CSS and vanilla JS."""


def get_dashboard_html() -> str:
    return """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>Focus Planner</title>
<style>
  :root {
    --bg: #0d1117; --surface: #161b22; --border: #30363d;
    --text: #e6edf3; --text-muted: #8b949e; --text-dim: #6e7681;
    --peak: #3fb950; --productive: #58a6ff; --low-energy: #d29922;
  }
  * { margin: 0; padding: 0; box-sizing: border-box; }
  body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Helvetica, Arial, sans-serif;
         background: var(--bg); color: var(--text); line-height: 1.5; }
  .container { max-width: 960px; margin: 0 auto; padding: 24px 16px; }

  header { display: flex; justify-content: space-between; align-items: center; gap: 12px;
           padding-bottom: 16px; border-bottom: 1px solid var(--border); margin-bottom: 24px; }
  header h1 { font-size: 20px; font-weight: 600; }
  header select, header input { background: var(--surface); color: var(--text); border: 1px solid var(--border);
                  padding: 6px 12px; border-radius: 6px; font-size: 14px; }

  .flow { background: var(--surface); border: 1px solid var(--border);
          border-radius: 8px; padding: 16px; margin-bottom: 20px; font-size: 14px; }
  .flow .type { font-weight: 600; text-transform: uppercase; font-size: 12px; letter-spacing: 0.5px; }
  .flow .type.peak { color: var(--peak); }
  .flow .type.productive { color: var(--productive); }
  .flow .type.low-energy { color: var(--low-energy); }

  .section-bar { display: flex; justify-content: space-between; align-items: center;
                 margin: 16px 0 8px; font-size: 12px; color: var(--text-dim); }
  .section-bar button { background: var(--surface); color: var(--text-muted); border: 1px solid var(--border);
                        padding: 4px 10px; border-radius: 4px; cursor: pointer; font-size: 12px; }
  .section-bar button:hover { color: var(--text); border-color: var(--text-muted); }

  .block-list { display: flex; flex-direction: column; gap: 2px; }
  .block { background: var(--surface); border: 1px solid var(--border); border-left-width: 4px;
           border-radius: 8px; padding: 10px 16px; display: flex; gap: 12px; align-items: center; }
  .block.break { opacity: 0.6; }
  .block .time { font-family: monospace; font-size: 13px; color: var(--text-muted); min-width: 110px; }
  .block .title { font-weight: 600; font-size: 14px; }
  .notes { font-size: 13px; color: var(--text-muted); margin-top: 8px; }
  .empty { text-align: center; padding: 32px; color: var(--text-muted); }
</style>
</head>
<body>
<div class="container">
  <header>
    <h1>Focus Planner</h1>
    <div>
      <input type="date" id="day-picker">
      <select id="user-picker"><option value="">Loading...</option></select>
    </div>
  </header>
  <div id="content">
    <div class="empty"><h3>Select a user</h3></div>
  </div>
</div>

<script>
let currentUser = null;
let users = [];

async function fetchJSON(path) {
  const res = await fetch(path);
  if (!res.ok) return null;
  return res.json();
}

function currentDay() {
  return document.getElementById('day-picker').value;
}

async function loadUsers() {
  const picker = document.getElementById('user-picker');
  document.getElementById('day-picker').value = new Date().toISOString().slice(0, 10);
  users = await fetchJSON('/api/users') || [];
  if (users.length === 0) {
    picker.innerHTML = '<option value="">No users</option>';
    return;
  }
  picker.innerHTML = users.map(u => `<option value="${u.id}">${esc(u.name)}</option>`).join('');
  picker.addEventListener('change', () => { currentUser = picker.value; loadDashboard(); });
  document.getElementById('day-picker').addEventListener('change', loadDashboard);
  currentUser = users[0].id;
  loadDashboard();
}

async function loadDashboard() {
  if (!currentUser) return;
  const user = users.find(u => String(u.id) === String(currentUser));
  const day = currentDay();
  const [flow, blocks, preview] = await Promise.all([
    fetchJSON(`/api/flow/recommendation?preset=${user.preset}`),
    fetchJSON(`/api/users/${currentUser}/blocks?date=${day}`),
    fetchJSON(`/api/users/${currentUser}/schedule/preview?date=${day}&preset=${user.preset}`),
  ]);

  let html = '';
  if (flow) {
    html += `<div class="flow">
      <span class="type ${flow.time_slot_type}">${flow.time_slot_type}</span>
      &nbsp;&middot;&nbsp; energy ${flow.energy_level.toFixed(2)}
      <div>${esc(flow.recommendation)}</div>
    </div>`;
  }

  html += `<div class="section-bar"><span>Saved blocks (${blocks ? blocks.length : 0})</span>
    <button onclick="loadDashboard()">Refresh</button></div>`;
  html += renderBlocks(blocks, 'No saved blocks. Use <code>fp schedule apply</code>.');

  html += `<div class="section-bar"><span>Preview</span>
    <button onclick="applySchedule()">Apply</button></div>`;
  html += renderBlocks(preview ? preview.scheduled_blocks : [], 'Nothing left to schedule.');
  if (preview) {
    const notes = preview.conflicts.concat(preview.suggestions);
    if (notes.length) html += `<div class="notes">${notes.map(esc).join('<br>')}</div>`;
  }
  document.getElementById('content').innerHTML = html;
}

function renderBlocks(blocks, emptyText) {
  if (!blocks || blocks.length === 0) return `<div class="empty">${emptyText}</div>`;
  return '<div class="block-list">' + blocks.map(b => `
    <div class="block ${b.block_type}" style="border-left-color:${b.color || '#30363d'}">
      <span class="time">${b.start.slice(11, 16)}-${b.end.slice(11, 16)}</span>
      <span class="title">${esc(b.title)}</span>
      ${b.is_completed ? '<span>&#10003;</span>' : ''}
    </div>`).join('') + '</div>';
}

async function applySchedule() {
  const user = users.find(u => String(u.id) === String(currentUser));
  await fetch(`/api/users/${currentUser}/schedule/apply`, {
    method: 'POST',
    headers: {'Content-Type': 'application/json'},
    body: JSON.stringify({date: currentDay(), options: {preset: user.preset}}),
  });
  loadDashboard();
}

function esc(s) {
  if (!s) return '';
  const d = document.createElement('div');
  d.textContent = s;
  return d.innerHTML;
}

loadUsers();
setInterval(loadDashboard, 30000);
</script>
</body>
</html>"""
