"""
Parameter files for the DG solver.

The format is line based:

    # comment
    set degree     = 2
    set test case  = smooth
    subsection output
      set directory = results
    end

Entries inside subsections are addressed as "subsection/name".
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, TextIO, Union

from ..errors import ParameterError


@dataclass
class Entry:
    default: str
    pattern: Callable[[str], object]
    documentation: str = ""
    description: str = ""
    value: Optional[str] = None


def integer(min_value: Optional[int] = None) -> Callable[[str], int]:
    def convert(text: str) -> int:
        value = int(text)
        if min_value is not None and value < min_value:
            raise ValueError(f"must be at least {min_value}")
        return value

    convert.description = "Integer" if min_value is None else f"Integer >= {min_value}"
    return convert


def double(min_value: Optional[float] = None) -> Callable[[str], float]:
    def convert(text: str) -> float:
        value = float(text)
        if min_value is not None and value < min_value:
            raise ValueError(f"must be at least {min_value}")
        return value

    convert.description = "Double" if min_value is None else f"Double >= {min_value}"
    return convert


def selection(choices: Sequence[str]) -> Callable[[str], str]:
    def convert(text: str) -> str:
        if text not in choices:
            raise ValueError(f"must be one of {'|'.join(choices)}")
        return text

    convert.description = f"Selection {'|'.join(choices)}"
    return convert


def anything(text: str) -> str:
    return text


anything.description = "Anything"


class ParameterHandler:
    """
    Declare typed entries with defaults, read them from a file and print
    them back in the same format.
    """

    def __init__(self):
        self.entries: Dict[str, Entry] = {}
        self._section: List[str] = []

    def _key(self, name: str) -> str:
        return "/".join(self._section + [name])

    def enter_subsection(self, name: str) -> None:
        self._section.append(name)

    def leave_subsection(self) -> None:
        if not self._section:
            raise ParameterError("leave_subsection() without matching enter_subsection()")
        self._section.pop()

    def declare_entry(
        self,
        name: str,
        default: str,
        pattern: Callable[[str], object] = anything,
        documentation: str = "",
    ) -> None:
        try:
            pattern(default)
        except ValueError as exc:
            raise ParameterError(f"Default '{default}' for '{name}' is invalid: {exc}") from exc
        self.entries[self._key(name)] = Entry(
            default, pattern, documentation, getattr(pattern, "description", "")
        )

    def set(self, name: str, value: str) -> None:
        key = self._key(name)
        if key not in self.entries:
            raise ParameterError(f"Unknown parameter '{key}'")
        entry = self.entries[key]
        try:
            entry.pattern(value)
        except ValueError as exc:
            raise ParameterError(f"Invalid value '{value}' for '{key}': {exc}") from exc
        entry.value = value

    def get(self, name: str) -> str:
        key = self._key(name)
        if key not in self.entries:
            raise ParameterError(f"Unknown parameter '{key}'")
        entry = self.entries[key]
        return entry.value if entry.value is not None else entry.default

    def get_integer(self, name: str) -> int:
        return int(self.get(name))

    def get_double(self, name: str) -> float:
        return float(self.get(name))

    def parse_input(self, filename: Union[str, Path]) -> None:
        with open(filename) as f:
            self.parse_input_from_string(f.read())

    def parse_input_from_string(self, text: str) -> None:
        saved = list(self._section)
        self._section = []
        try:
            for lineno, raw in enumerate(text.splitlines(), start=1):
                line = raw.split("#", 1)[0].strip()
                if not line:
                    continue
                words = line.split(None, 1)
                if words[0] == "subsection" and len(words) == 2:
                    self.enter_subsection(words[1].strip())
                elif words[0] == "end" and len(words) == 1:
                    self.leave_subsection()
                elif words[0] == "set" and len(words) == 2 and "=" in words[1]:
                    name, value = words[1].split("=", 1)
                    self.set(" ".join(name.split()), value.strip())
                else:
                    raise ParameterError(f"Line {lineno}: cannot parse '{raw.strip()}'")
            if self._section:
                raise ParameterError(f"Missing 'end' for subsection '{self._section[-1]}'")
        finally:
            self._section = saved

    def print_parameters(self, output: TextIO) -> None:
        output.write("# Listing of Parameters\n")
        output.write("# ---------------------\n")
        current: List[str] = []
        for key, entry in self.entries.items():
            *section, name = key.split("/")
            while current and current != section[: len(current)]:
                current.pop()
                output.write("  " * len(current) + "end\n")
            while len(current) < len(section):
                output.write("  " * len(current) + f"subsection {section[len(current)]}\n")
                current.append(section[len(current)])

            indent = "  " * len(current)
            if entry.documentation:
                output.write(f"{indent}# {entry.documentation}\n")
            value = entry.value if entry.value is not None else entry.default
            line = f"{indent}set {name} = {value}"
            if value != entry.default:
                line += f" # default: {entry.default}"
            output.write(line + "\n")
        while current:
            current.pop()
            output.write("  " * len(current) + "end\n")


@dataclass
class Parameter:
    degree: int = 1
    n_cells: int = 100
    test_case: str = "smooth"
    pde: str = "linear"
    speed: float = 1.0
    cfl: float = 0.2
    final_time: float = 1.0
    time_scheme: str = "ssprk3"
    flux: str = "rusanov"
    limiter: str = "none"
    tvb_parameter: float = 0.0
    output_step: int = 0
    output_dir: str = "."
    refine_levels: int = 1
    xmin: float = 0.0
    xmax: float = 1.0


TEST_CASES = ("smooth", "square", "composite")
PDES = ("linear", "burgers")
TIME_SCHEMES = ("euler", "ssprk2", "ssprk3")
FLUXES = ("central", "upwind", "rusanov", "godunov", "roe")
LIMITERS = ("none", "tvd", "tvb")


def declare_parameters(ph: ParameterHandler) -> None:
    ph.declare_entry("degree", "1", integer(0), "Polynomial degree")
    ph.declare_entry("ncells", "100", integer(1), "Number of cells")
    ph.declare_entry("test case", "smooth", selection(TEST_CASES), "Initial condition")
    ph.declare_entry("pde", "linear", selection(PDES), "Flux function")
    ph.declare_entry("speed", "1.0", double(), "Advection speed for the linear pde")
    ph.declare_entry("cfl", "0.2", double(0.0), "CFL number")
    ph.declare_entry("final time", "1.0", double(0.0), "Final time")
    ph.declare_entry("time scheme", "ssprk3", selection(TIME_SCHEMES), "Time integrator")
    ph.declare_entry("numerical flux", "rusanov", selection(FLUXES), "Numerical flux")
    ph.declare_entry("limiter", "none", selection(LIMITERS), "Slope limiter")
    ph.declare_entry("tvb parameter", "0.0", double(0.0), "TVB constant M")
    ph.declare_entry(
        "output step", "0", integer(0), "Write solution every this many steps, 0 = final only"
    )
    ph.declare_entry("output directory", ".", anything, "Directory for output files")
    ph.declare_entry(
        "refine levels", "1", integer(1), "Number of meshes, doubling ncells each time"
    )


def parse_parameters(ph: ParameterHandler) -> Parameter:
    param = Parameter(
        degree=ph.get_integer("degree"),
        n_cells=ph.get_integer("ncells"),
        test_case=ph.get("test case"),
        pde=ph.get("pde"),
        speed=ph.get_double("speed"),
        cfl=ph.get_double("cfl"),
        final_time=ph.get_double("final time"),
        time_scheme=ph.get("time scheme"),
        flux=ph.get("numerical flux"),
        limiter=ph.get("limiter"),
        tvb_parameter=ph.get_double("tvb parameter"),
        output_step=ph.get_integer("output step"),
        output_dir=ph.get("output directory"),
        refine_levels=ph.get_integer("refine levels"),
    )
    if param.flux == "upwind" and param.pde != "linear":
        raise ParameterError("The upwind flux is only available for the linear pde")
    return param
