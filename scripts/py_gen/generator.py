"""
Main generator module

Orchestrates all components to generate a complete pybind11 extension
project: binding source, type stub and build scaffolding.
"""

import os
from typing import Optional

from loguru import logger

from .ir import Model
from .codegen import CodeGen
from .types import TypeMapper
from .enum import EnumGenerator
from .struct import StructGenerator
from .func import FuncGenerator
from .stubs import StubGenerator
from .scaffold import ScaffoldGenerator
from .materialize import FileMaterializer
from .config import DEFAULT_VERSION

PYBIND11_INCLUDES = (
    'pybind11/pybind11.h',
    'pybind11/complex.h',
    'pybind11/functional.h',
    'pybind11/stl.h',
)


class Generator:
    """Main binding generator"""

    def __init__(self, module_name: str, output_dir: str, version: str = DEFAULT_VERSION,
                 template_dir: Optional[str] = None, type_mapper: Optional[TypeMapper] = None):
        self.module_name = module_name
        self.output_dir = output_dir
        self.version = version
        self.type_mapper = type_mapper or TypeMapper()
        self.func_gen = FuncGenerator(self.type_mapper)
        self.enum_gen = EnumGenerator()
        self.struct_gen = StructGenerator(self.func_gen)
        self.scaffold = ScaffoldGenerator(module_name, version, template_dir)
        self.materializer = FileMaterializer()

    def paths(self) -> dict[str, str]:
        """Output path of every artifact"""
        package_root = os.path.join(self.output_dir, self.module_name)
        package_dir = os.path.join(package_root, self.module_name)
        return {
            'binding': os.path.join(self.output_dir, f'{self.module_name}.cpp'),
            'build': os.path.join(self.output_dir, 'CMakeLists.txt'),
            'helper': os.path.join(self.output_dir, 'cmake', 'fetch_pybind11.cmake'),
            'setup': os.path.join(package_root, 'setup.py'),
            'pyproject': os.path.join(package_root, 'pyproject.toml'),
            'init': os.path.join(package_dir, '__init__.py'),
            'stub': os.path.join(package_dir, f'{self.module_name}.pyi'),
        }

    def generate(self, model: Model) -> FileMaterializer:
        """Render and write every artifact for the model"""
        logger.info(f'=== Generating pybind11 module {self.module_name} into {self.output_dir}')
        paths = self.paths()
        artifacts = [
            (paths['binding'], self.binding_source(model)),
            (paths['stub'], self.stub_source(model)),
            (paths['build'], self.scaffold.render_build_descriptor(model.headers)),
            (paths['helper'], self.scaffold.render_helper()),
            (paths['setup'], self.scaffold.render_setup()),
            (paths['pyproject'], self.scaffold.render_pyproject()),
            (paths['init'], self.scaffold.render_init(model)),
        ]
        for path, content in artifacts:
            self.materializer.write_if_different(path, content)
        logger.info(f'{len(self.materializer.written)} written, '
                    f'{len(self.materializer.skipped)} unchanged')
        return self.materializer

    def stub_source(self, model: Model) -> str:
        return StubGenerator(model, self.type_mapper, self.module_name).generate()

    def binding_source(self, model: Model) -> str:
        """Generate the PYBIND11_MODULE definition"""
        for func in model.orphan_methods():
            owner = func.owner.full if func.owner else '<unknown>'
            logger.warning(f'Skipping {func.name.full}: owner {owner} is not a collected type')
        for func in model.functions:
            if self.func_gen.python_name(func) is None:
                logger.warning(f'Skipping {func.name.full}: no Python equivalent')

        gen = CodeGen()
        gen.line(f'// pybind11 bindings for {self.module_name} (auto-generated, do not edit)')
        gen.line()
        for include in PYBIND11_INCLUDES:
            gen.line(f'#include <{include}>')
        gen.line()

        user_headers = model.user_headers()
        if user_headers:
            for header in user_headers:
                gen.line(f'#include "{header.name}"')
            gen.line()

        system_headers = model.system_headers()
        if system_headers:
            gen.line('// System headers seen in the sources, not included:')
            for header in system_headers:
                gen.line(f'// #include <{header.name}>')
            gen.line()

        gen.line('namespace py = pybind11;')
        gen.line()

        with gen.block(f'PYBIND11_MODULE({self.module_name}, m) {{'):
            gen.line(f'm.doc() = "{self.module_name} bindings";')
            gen.line()

            # Declare every type before any signature refers to it
            for entity in model.types:
                if entity.is_enum:
                    self.enum_gen.generate(entity, gen)
                else:
                    self.struct_gen.declare(entity, gen)
            gen.line()

            for entity in model.structs():
                self.struct_gen.define(entity, model.methods_of(entity), gen)

            for func in model.free_functions():
                self.func_gen.generate_free(func, gen)

        return gen.output()
