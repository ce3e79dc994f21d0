"""Fallback dashboard document served at "/".

Hosts normally pass their own page to `WebServer(dashboard_html=...)`; this
one just lists the mounts from /_api/mounts.
"""
from __future__ import annotations

from pathlib import Path

__all__ = ["DEFAULT_DASHBOARD", "load_dashboard"]

DEFAULT_DASHBOARD = """<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>webmount</title>
<style>
  body { font-family: system-ui, sans-serif; margin: 2rem auto; max-width: 48rem; }
  li { margin: .4rem 0; }
  code { color: #555; }
</style>
</head>
<body>
<h1>Mounted extensions</h1>
<ul id="mounts"><li>Loading&hellip;</li></ul>
<script>
fetch("/_api/mounts")
  .then((r) => r.json())
  .then((mounts) => {
    const ul = document.getElementById("mounts");
    ul.innerHTML = "";
    if (!mounts.length) { ul.innerHTML = "<li>No extensions mounted</li>"; return; }
    for (const m of mounts) {
      const li = document.createElement("li");
      const a = document.createElement("a");
      a.href = m.prefix + "/";
      a.textContent = m.label;
      li.appendChild(a);
      li.append(" ", Object.assign(document.createElement("code"), { textContent: m.prefix }));
      if (m.description) li.append(" - " + m.description);
      ul.appendChild(li);
    }
  });
</script>
</body>
</html>
"""


def load_dashboard(path: str | Path | None = None) -> str:
    """Read a dashboard file, or return the built-in page when no path is given."""
    if path is None:
        return DEFAULT_DASHBOARD
    return Path(path).read_text(encoding="utf-8")
