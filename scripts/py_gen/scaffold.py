"""
Build scaffold generation module

Renders the packaged build and packaging templates with placeholder
substitution, and the package re-export shim.
"""

import os
import re
from typing import Iterable, Optional, TYPE_CHECKING

from .errors import TemplateError
from .stubs import exported_names

if TYPE_CHECKING:
    from .ir import Model, HeaderReference

TEMPLATE_DIR = os.path.join(os.path.dirname(__file__), 'templates')

PLACEHOLDER_RE = re.compile(r'\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}')
PROJECT_RE = re.compile(r'^\s*project\s*\(', re.IGNORECASE)

BUILD_DESCRIPTOR = 'CMakeLists.txt.in'
HELPER = 'fetch_pybind11.cmake.in'
SETUP = 'setup.py.in'
PYPROJECT = 'pyproject.toml.in'


class ScaffoldGenerator:
    """Renders build scaffolding for one binding module"""

    def __init__(self, module_name: str, version: str, template_dir: Optional[str] = None):
        self.module_name = module_name
        self.version = version
        self.template_dir = template_dir or TEMPLATE_DIR

    @property
    def placeholders(self) -> dict[str, str]:
        return {
            'MODULE_NAME': self.module_name,
            'VERSION': self.version,
        }

    def load(self, name: str) -> str:
        """Read a template, raising TemplateError if it cannot be read"""
        path = os.path.join(self.template_dir, name)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return f.read()
        except OSError as e:
            raise TemplateError(f'cannot read template: {e.strerror}', path) from e

    def substitute(self, text: str, template: Optional[str] = None) -> str:
        """Replace every placeholder occurrence

        Substituted values are never rescanned, so a value containing
        placeholder syntax cannot expand further.
        """
        values = self.placeholders
        unresolved = []

        def replace(match: re.Match) -> str:
            key = match.group(1)
            if key not in values:
                unresolved.append(key)
                return match.group(0)
            return values[key]

        result = PLACEHOLDER_RE.sub(replace, text)
        if unresolved:
            names = ', '.join(sorted(set(unresolved)))
            raise TemplateError(f'unresolved placeholder(s): {names}', template)
        return result

    def render(self, name: str) -> str:
        return self.substitute(self.load(name), name)

    def render_build_descriptor(self, headers: Iterable['HeaderReference']) -> str:
        """Render the CMake project with the user headers listed after project()"""
        text = self.render(BUILD_DESCRIPTOR)
        lines = text.split('\n')
        for i, line in enumerate(lines):
            if PROJECT_RE.match(line):
                break
        else:
            raise TemplateError('no project() declaration to annotate', BUILD_DESCRIPTOR)

        paths = sorted({h.full_path or h.name for h in headers if not h.is_system})
        block = ['', '# Unresolved dependencies (user headers):']
        block += [f'#   {path}' for path in paths] or ['#   (none)']
        lines[i + 1:i + 1] = block
        return '\n'.join(lines)

    def render_helper(self) -> str:
        return self.render(HELPER)

    def render_setup(self) -> str:
        return self.render(SETUP)

    def render_pyproject(self) -> str:
        return self.render(PYPROJECT)

    def render_init(self, model: 'Model') -> str:
        """Render the package __init__.py re-exporting the extension's names"""
        names = exported_names(model)
        lines = [f'"""{self.module_name} bindings (auto-generated, do not edit)"""', '']
        if names:
            lines.append(f'from .{self.module_name} import (')
            lines += [f'    {name},' for name in names]
            lines.append(')')
        else:
            lines.append(f'from . import {self.module_name}  # noqa: F401')
        lines.append('')
        lines.append('__all__ = [')
        lines += [f"    '{name}'," for name in names]
        lines.append(']')
        return '\n'.join(lines) + '\n'
