from projsynth.python.pip import Pip, RequirementsFile, to_pep440_requirement
from projsynth.python.poetry import Poetry, PoetryPyproject, PoetryPyprojectOptions
from projsynth.python.project import PythonProjectOptions, create_python_project
from projsynth.python.setuptools import SetupPy, SetupPyOptions, Setuptools
from projsynth.python.testing import Pytest, PytestOptions
from projsynth.python.venv import Venv

__all__ = [
    "Pip",
    "Poetry",
    "PoetryPyproject",
    "PoetryPyprojectOptions",
    "Pytest",
    "PytestOptions",
    "PythonProjectOptions",
    "RequirementsFile",
    "SetupPy",
    "SetupPyOptions",
    "Setuptools",
    "Venv",
    "create_python_project",
    "to_pep440_requirement",
]
