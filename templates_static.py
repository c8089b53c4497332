"""Templates and static file generation."""

from pathlib import Path

# Template content
BASE_HTML = """<!doctype html>
<html>
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>{{ title or 'Gallery' }}</title>
  <link rel="stylesheet" href="/static/app.css">
</head>
<body>
  <header class="topbar">
    <nav>
      <a href="/view" class="brand">🖼 Gallery</a>
      <a href="/api/images">JSON</a>
    </nav>
  </header>
  <main class="container">
    {% block content %}{% endblock %}
  </main>
</body>
</html>
"""

VIEW_HTML = """{% extends 'base.html' %}
{% block content %}
<h1>Recent uploads</h1>
<p class="muted">Showing {{ images|length }} of {{ total }} uploads, newest first</p>
{% if images %}
<div class="grid">
  {% for img in images %}
  <div class="card">
    <a href="{{ img.image_path }}" target="_blank">
      <img loading="lazy" src="{{ img.thumbnail_path }}" alt="{{ img.filename }}" width="{{ thumb_size }}">
    </a>
    <div class="meta">
      <div class="fn" title="{{ img.sha256sum }}">{{ img.sha256sum[:16] }}…</div>
      <div class="kv"><span class="muted">Size</span><span>{{ img.width }}×{{ img.height }}</span></div>
      <div class="kv"><span class="muted">Uploaded</span><span>{{ img.upload_date|datetime }}</span></div>
    </div>
  </div>
  {% endfor %}
</div>
{% else %}
<p class="flash">No images uploaded yet.</p>
{% endif %}
{% endblock %}
"""

ERROR_HTML = """{% extends 'base.html' %}
{% block content %}
<h1>Error</h1>
<p class="flash error">{{ error }}</p>
{% endblock %}
"""

APP_CSS = """:root{--bg:#0f1115;--fg:#e5e7eb;--muted:#a1a1aa;--card:#111318;--brand:#7aa2ff;--danger:#ff5c5c}
*{box-sizing:border-box}body{margin:0;background:var(--bg);color:var(--fg);font:15px/1.45 system-ui,-apple-system,Segoe UI,Roboto,Inter,Ubuntu,Helvetica,Arial}
a{color:var(--brand);text-decoration:none}.muted{color:var(--muted)}
.topbar{position:sticky;top:0;background:#0c0e13;border-bottom:1px solid #1c1f26;z-index:10}
.topbar nav{margin:auto;display:flex;gap:14px;align-items:center;padding:10px}
.topbar .brand{font-weight:700}
.container{margin:20px auto;padding:0 14px}
.grid{display:grid;grid-template-columns:repeat(auto-fill,minmax(160px,1fr));gap:14px}
.card{background:var(--card);border:1px solid #1f2430;border-radius:12px;overflow:hidden;display:flex;flex-direction:column}
.card img{width:100%;height:140px;object-fit:contain;display:block;background:#090a0d}
.card .meta{padding:10px;display:flex;flex-direction:column;gap:4px;font-size:13px}
.fn{white-space:nowrap;overflow:hidden;text-overflow:ellipsis;font-family:ui-monospace,monospace}
.kv{display:flex;justify-content:space-between;gap:12px}
.flash{background:#13221d;border:1px solid #214d39;padding:10px;border-radius:10px}
.flash.error{background:#2d1b1b;border-color:#ef4444;color:#f87171}
"""


def ensure_assets(templates_dir: Path, static_dir: Path) -> None:
    """Create templates/static on first run."""
    templates_dir.mkdir(parents=True, exist_ok=True)
    static_dir.mkdir(parents=True, exist_ok=True)
    files = {
        templates_dir / "base.html": BASE_HTML,
        templates_dir / "view.html": VIEW_HTML,
        templates_dir / "error.html": ERROR_HTML,
        static_dir / "app.css": APP_CSS,
    }
    for p, content in files.items():
        if not p.exists():
            p.write_text(content, encoding="utf-8")
