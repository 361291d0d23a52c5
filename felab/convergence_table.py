"""
Convergence table: collect error norms per refinement cycle, compute rates
and write them as plain text or LaTeX.
"""

import numpy as np
from typing import Dict, List, Optional, TextIO

REDUCTION_RATE = "reduction_rate"
REDUCTION_RATE_LOG2 = "reduction_rate_log2"


class ConvergenceTable:
    """
    Table of named columns filled row by row.

    Columns are ordered by first use of `add_value`; a rate column follows
    the column it was computed from. Each column carries its own precision,
    scientific flag, TeX caption and TeX alignment.
    """

    def __init__(self):
        self.columns: Dict[str, List] = {}
        self.precision: Dict[str, int] = {}
        self.scientific: Dict[str, bool] = {}
        self.tex_captions: Dict[str, str] = {}
        self.tex_formats: Dict[str, str] = {}
        # Rate columns of each data column, in evaluation order
        self.rate_columns: Dict[str, List[str]] = {}

    def add_value(self, key: str, value) -> None:
        self.columns.setdefault(key, []).append(value)

    def _require(self, key: str) -> List:
        if key not in self.columns:
            raise KeyError(f"No column named '{key}'")
        return self.columns[key]

    def set_precision(self, key: str, precision: int) -> None:
        self._require(key)
        self.precision[key] = precision

    def set_scientific(self, key: str, scientific: bool = True) -> None:
        self._require(key)
        self.scientific[key] = scientific

    def set_tex_caption(self, key: str, caption: str) -> None:
        self._require(key)
        self.tex_captions[key] = caption

    def set_tex_format(self, key: str, fmt: str = "c") -> None:
        self._require(key)
        if fmt not in ("l", "c", "r"):
            raise ValueError(f"TeX column format must be l, c or r, got '{fmt}'")
        self.tex_formats[key] = fmt

    @property
    def n_rows(self) -> int:
        return max((len(col) for col in self.columns.values()), default=0)

    def evaluate_convergence_rates(
        self,
        key: str,
        reference_key_or_mode: str,
        rate_mode: Optional[str] = None,
        dim: int = 2,
    ) -> str:
        """
        Append a column with the convergence rate of column `key`.

        Two forms are accepted:
            evaluate_convergence_rates("L2", "reduction_rate_log2")
            evaluate_convergence_rates("L2", "cells", "reduction_rate_log2", dim=2)

        In the first form successive rows are assumed to halve the mesh size;
        reduction_rate gives e[i-1]/e[i], reduction_rate_log2 gives
        log2(e[i-1]/e[i]). In the second form the rate is measured against the
        reference column (e.g. number of cells) in `dim` dimensions, so the
        log2 mode gives dim*log(e[i-1]/e[i])/log(n[i]/n[i-1]) and the plain
        mode gives the error reduction per halving of the mesh size.

        Returns:
            Name of the rate column
        """
        if rate_mode is None:
            reference = None
            rate_mode = reference_key_or_mode
        else:
            reference = np.asarray(self._require(reference_key_or_mode), dtype=float)

        if rate_mode not in (REDUCTION_RATE, REDUCTION_RATE_LOG2):
            raise ValueError(f"Unknown rate mode '{rate_mode}'")

        values = np.asarray(self._require(key), dtype=float)
        rate_key = f"{key} rate log2" if rate_mode == REDUCTION_RATE_LOG2 else f"{key} rate"

        rates = ["-"]
        for i in range(1, len(values)):
            ratio = values[i - 1] / values[i]
            if reference is None:
                rate = np.log2(ratio) if rate_mode == REDUCTION_RATE_LOG2 else ratio
            else:
                order = dim * np.log(ratio) / np.log(reference[i] / reference[i - 1])
                rate = order if rate_mode == REDUCTION_RATE_LOG2 else 2.0**order
            rates.append(float(rate))

        self._insert_rate_column(key, rate_key, rates)
        self.precision[rate_key] = 2
        self.scientific[rate_key] = False
        self.tex_captions.setdefault(
            rate_key, "rate" if rate_mode == REDUCTION_RATE_LOG2 else "red.rate"
        )
        self.tex_formats.setdefault(rate_key, "r")
        return rate_key

    def _insert_rate_column(self, key: str, rate_key: str, rates: List) -> None:
        """Place rate_key after `key` and its earlier rate columns."""
        group = self.rate_columns.setdefault(key, [])
        if rate_key not in group:
            group.append(rate_key)

        columns = {}
        for name, values in self.columns.items():
            if name in group:
                continue
            columns[name] = values
            if name == key:
                for rate_name in group:
                    columns[rate_name] = (
                        rates if rate_name == rate_key else self.columns[rate_name]
                    )
        self.columns = columns

    def _format(self, key: str, value) -> str:
        if isinstance(value, str):
            return value
        if isinstance(value, (int, np.integer)):
            return str(value)
        precision = self.precision.get(key, 4)
        if self.scientific.get(key, False):
            return f"{value:.{precision}e}"
        return f"{value:.{precision}f}"

    def _cells(self, key: str) -> List[str]:
        column = self.columns[key]
        return [
            self._format(key, column[i]) if i < len(column) else ""
            for i in range(self.n_rows)
        ]

    def write_text(self, output: TextIO) -> None:
        """Write an aligned plain-text table with a header row."""
        keys = list(self.columns)
        cells = {key: self._cells(key) for key in keys}
        widths = {
            key: max([len(key)] + [len(c) for c in cells[key]]) for key in keys
        }

        output.write(" ".join(key.ljust(widths[key]) for key in keys).rstrip() + "\n")
        for i in range(self.n_rows):
            output.write(
                " ".join(cells[key][i].rjust(widths[key]) for key in keys) + "\n"
            )

    def write_tex(self, output: TextIO, with_header: bool = True) -> None:
        """Write the table as LaTeX, by default as a complete document."""
        keys = list(self.columns)

        if with_header:
            output.write("\\documentclass[10pt]{report}\n")
            output.write("\\usepackage{float}\n\n\n")
            output.write("\\begin{document}\n")
        output.write("\\begin{table}[H]\n")
        output.write("\\begin{center}\n")
        alignment = "|".join(self.tex_formats.get(key, "c") for key in keys)
        output.write(f"\\begin{{tabular}}{{|{alignment}|}}\n")
        output.write("\\hline\n")

        output.write(" & ".join(self._tex_header(keys)) + "\\\\\n")
        output.write("\\hline\n")

        cells = {key: self._cells(key) for key in keys}
        for i in range(self.n_rows):
            row = [
                _tex_number(cells[key][i]) if self.scientific.get(key) else cells[key][i]
                for key in keys
            ]
            output.write(" & ".join(row) + "\\\\\n")

        output.write("\\hline\n")
        output.write("\\end{tabular}\n")
        output.write("\\end{center}\n")
        output.write("\\end{table}\n")
        if with_header:
            output.write("\\end{document}\n")

    def _tex_header(self, keys: List[str]) -> List[str]:
        """Captions, with a data column and its rates under one multicolumn."""
        rate_keys = {name for group in self.rate_columns.values() for name in group}
        header = []
        for key in keys:
            if key in rate_keys:
                continue
            caption = self.tex_captions.get(key, key)
            span = 1 + len(self.rate_columns.get(key, []))
            if span > 1:
                border = "|c|" if not header else "c|"
                caption = f"\\multicolumn{{{span}}}{{{border}}}{{{caption}}}"
            header.append(caption)
        return header


def _tex_number(cell: str) -> str:
    """Typeset scientific notation as a TeX exponent."""
    if "e" in cell:
        mantissa, exponent = cell.split("e")
        return f"${mantissa} \\cdot 10^{{{int(exponent)}}}$"
    return cell
