"""
Init scripts that hide the most common automation fingerprints.

Installed on every browser context before any page script runs.
"""

from __future__ import annotations

from typing import List

HIDE_WEBDRIVER = """
Object.defineProperty(navigator, 'webdriver', {
    get: () => false
});
"""

FAKE_PLUGINS = """
Object.defineProperty(navigator, 'plugins', {
    get: () => [
        {name: 'Chrome PDF Plugin', filename: 'internal-pdf-viewer', description: 'Portable Document Format', length: 1},
        {name: 'Chrome PDF Viewer', filename: 'mhjfbmdgcfjbbpaeojofohoefgiehjai', description: '', length: 1},
        {name: 'Native Client', filename: 'internal-nacl-plugin', description: '', length: 2}
    ]
});
"""

LANGUAGES_TEMPLATE = """
Object.defineProperty(navigator, 'languages', {
    get: () => %s
});
"""

CHROME_RUNTIME = """
if (!window.chrome) {
    window.chrome = {runtime: {}, loadTimes: function() {}, csi: function() {}, app: {}};
}
"""


def build_stealth_scripts(locale: str = "en-US") -> List[str]:
    """Scripts to pass to ``BrowserContext.add_init_script``, in install order."""
    primary = locale.split("-")[0]
    languages = [locale] if primary == locale else [locale, primary]
    languages_js = "[" + ", ".join(f"'{lang}'" for lang in languages) + "]"
    return [HIDE_WEBDRIVER, FAKE_PLUGINS, LANGUAGES_TEMPLATE % languages_js, CHROME_RUNTIME]
