"""HTML for the credential-entry form and authorization errors."""

from html import escape
from typing import Optional

_STYLE = """
body { font-family: system-ui, sans-serif; max-width: 28rem; margin: 4rem auto; padding: 0 1rem; color: #1f2933; }
h1 { font-size: 1.4rem; }
label { display: block; margin: 1rem 0 .3rem; font-weight: 600; }
input[type=password] { width: 100%; padding: .5rem; box-sizing: border-box; }
button { margin-top: 1rem; padding: .5rem 1.2rem; }
.error { background: #fde8e8; border: 1px solid #f5a3a3; padding: .6rem; border-radius: 4px; }
.hint { color: #616e7c; font-size: .9rem; }
"""


def render_authorize_form(
    action: str,
    encoded_state: str,
    error: Optional[str] = None,
    client_name: Optional[str] = None,
) -> str:
    """Render the API key form.

    ``encoded_state`` is placed in a hidden field unchanged (HTML-escaped).
    """
    requester = escape(client_name) if client_name else "An MCP client"
    error_block = f'<p class="error" role="alert">{escape(error)}</p>' if error else ""
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Connect Fathom</title>
<style>{_STYLE}</style>
</head>
<body>
<h1>Connect your Fathom account</h1>
<p>{requester} is requesting read access to your Fathom meetings.</p>
{error_block}
<form method="post" action="{escape(action)}">
<input type="hidden" name="state" value="{escape(encoded_state)}">
<label for="api_key">Fathom API key</label>
<input type="password" id="api_key" name="api_key" autocomplete="off" required>
<p class="hint">Create a key in Fathom under Settings, API Access.</p>
<button type="submit">Authorize</button>
</form>
</body>
</html>
"""


def render_error_page(message: str) -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Authorization failed</title>
<style>{_STYLE}</style>
</head>
<body>
<h1>Authorization failed</h1>
<p class="error">{escape(message)}</p>
<p class="hint">Return to your MCP client and start the connection again.</p>
</body>
</html>
"""
