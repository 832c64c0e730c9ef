"""Visualization sinks for state snapshots.

A sink decides at which cycles a snapshot is due and receives the
fields flagged for output from :meth:`pygeokernel.state.State.write_vis`.

Classes
-------
Vis
    Base sink with cycle-period scheduling.
MemoryVis
    Keeps snapshots in memory.
CSVVis
    One CSV file per field and snapshot.
MeshioVis
    One VTU file per snapshot, written with *meshio*.
PlotVis
    One PNG per snapshot of every cell field component.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Sequence

import numpy as np

from pygeokernel.state.field import FieldLocation

logger = logging.getLogger(__name__)


class Vis:
    """Base visualization sink.

    Args:
        period: Write a snapshot every *period* cycles.
        disabled: Administratively switch output off.
    """

    def __init__(self, period: int = 1, disabled: bool = False) -> None:
        if period < 1:
            raise ValueError(f"period must be positive, got {period}.")
        self.period = period
        self.disabled = disabled
        self.time: float | None = None
        self.cycle: int | None = None
        self._n_unnamed = 0

    def dump_requested(self, cycle: int) -> bool:
        return cycle % self.period == 0

    def is_disabled(self) -> bool:
        return self.disabled

    def create_timestep(self, time: float, cycle: int) -> None:
        self.time = time
        self.cycle = cycle
        self._n_unnamed = 0

    def write_vector(
        self,
        data: np.ndarray,
        names: Sequence[str],
        fieldname: str | None = None,
        location: FieldLocation | str | None = None,
    ) -> None:
        raise NotImplementedError

    def close(self) -> None:
        """Finish pending output.  Called once at the end of a run."""

    def _component_names(
        self,
        data: np.ndarray,
        names: Sequence[str],
        fieldname: str | None = None,
    ) -> list[str]:
        """Column names of *data*.

        Sub-field names are used when there is one per column.  Otherwise
        columns are named after the field, or ``field<n>`` numbered per
        snapshot when the field name is unknown too.
        """
        if len(names) == data.shape[1]:
            return list(names)
        if fieldname is None:
            fieldname = f"field{self._n_unnamed}"
            self._n_unnamed += 1
        if data.shape[1] == 1:
            return [fieldname]
        return [f"{fieldname}_{i}" for i in range(data.shape[1])]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(period={self.period}, disabled={self.disabled})"


class MemoryVis(Vis):
    """Sink that stores snapshots as ``{"time", "cycle", "fields"}`` dicts."""

    def __init__(self, period: int = 1, disabled: bool = False) -> None:
        super().__init__(period, disabled)
        self.snapshots: list[dict[str, Any]] = []

    def create_timestep(self, time: float, cycle: int) -> None:
        super().create_timestep(time, cycle)
        self.snapshots.append({"time": time, "cycle": cycle, "fields": {}})

    def write_vector(self, data, names, fieldname=None, location=None) -> None:
        fields = self.snapshots[-1]["fields"]
        for i, name in enumerate(self._component_names(data, names, fieldname)):
            fields[name] = np.array(data[:, i])


class CSVVis(Vis):
    """Write every field of a snapshot to ``<prefix>_<cycle>_<names>.csv``.

    Args:
        directory: Output directory, created if needed.
        prefix: File name prefix.
        period: Write a snapshot every *period* cycles.
        disabled: Switch output off.
    """

    def __init__(
        self,
        directory: str | Path,
        prefix: str = "vis",
        period: int = 1,
        disabled: bool = False,
    ) -> None:
        super().__init__(period, disabled)
        self.directory = Path(directory)
        self.prefix = prefix
        self.files: list[Path] = []

    def create_timestep(self, time: float, cycle: int) -> None:
        super().create_timestep(time, cycle)
        self.directory.mkdir(parents=True, exist_ok=True)

    def write_vector(self, data, names, fieldname=None, location=None) -> None:
        columns = self._component_names(data, names, fieldname)
        stem = "-".join(columns)
        path = self.directory / f"{self.prefix}_{self.cycle:05d}_{stem}.csv"
        np.savetxt(path, data, delimiter=",", header=",".join(columns), comments="")
        self.files.append(path)


class MeshioVis(Vis):
    """Write each snapshot to ``<prefix>_<cycle>.vtu`` with *meshio*.

    Cell fields become cell data and node fields point data.  Face
    fields have no VTU representation and are skipped.  A snapshot is
    written when the next one starts or on :meth:`close`.

    Args:
        mesh: Mesh the state lives on.
        directory: Output directory, created if needed.
        prefix: File name prefix.
        period: Write a snapshot every *period* cycles.
        disabled: Switch output off.
    """

    def __init__(
        self,
        mesh: Any,
        directory: str | Path,
        prefix: str = "vis",
        period: int = 1,
        disabled: bool = False,
    ) -> None:
        super().__init__(period, disabled)
        self.mesh = mesh
        self.directory = Path(directory)
        self.prefix = prefix
        self.files: list[Path] = []
        self._cell_data: dict[str, np.ndarray] = {}
        self._point_data: dict[str, np.ndarray] = {}

    def create_timestep(self, time: float, cycle: int) -> None:
        self._flush()
        super().create_timestep(time, cycle)
        self.directory.mkdir(parents=True, exist_ok=True)

    def write_vector(self, data, names, fieldname=None, location=None) -> None:
        """Stage *data* as cell or point data of the pending snapshot.

        Without a *location*, the row count decides.

        Raises:
            ValueError: If the row count does not match the mesh entities
                of *location*.
        """
        columns = self._component_names(data, names, fieldname)
        if location is None:
            if data.shape[0] == self.mesh.n_cells:
                location = FieldLocation.CELL
            elif data.shape[0] == self.mesh.n_nodes:
                location = FieldLocation.NODE
            else:
                location = FieldLocation.FACE
        location = FieldLocation(location)

        if location is FieldLocation.CELL:
            target, expected = self._cell_data, self.mesh.n_cells
        elif location is FieldLocation.NODE:
            target, expected = self._point_data, self.mesh.n_nodes
        else:
            logger.debug("Skipping %s vector %s", location, columns)
            return
        if data.shape[0] != expected:
            raise ValueError(
                f"{location} vector {columns} has {data.shape[0]} rows, "
                f"the mesh has {expected} {location} entities."
            )
        for i, name in enumerate(columns):
            target[name] = np.array(data[:, i])

    def close(self) -> None:
        """Write the pending snapshot."""
        self._flush()

    def _flush(self) -> None:
        if self.cycle is None or not (self._cell_data or self._point_data):
            return
        import meshio

        mesh = self.mesh
        cell_type = "triangle" if mesh.cells.shape[1] == 3 else "quad"
        points = np.column_stack([mesh.nodes, np.zeros(mesh.n_nodes)])
        out = meshio.Mesh(
            points=points,
            cells=[(cell_type, mesh.cells)],
            point_data=self._point_data,
            cell_data={k: [v] for k, v in self._cell_data.items()},
        )
        path = self.directory / f"{self.prefix}_{self.cycle:05d}.vtu"
        out.write(path)
        self.files.append(path)
        self._cell_data = {}
        self._point_data = {}


class PlotVis(Vis):
    """Save a PNG of every cell field component at each snapshot.

    Figures are built without pyplot, so the caller's matplotlib
    backend is left alone.

    Args:
        mesh: Mesh the state lives on.
        directory: Output directory, created if needed.
        prefix: File name prefix.
        period: Write a snapshot every *period* cycles.
        disabled: Switch output off.
    """

    def __init__(
        self,
        mesh: Any,
        directory: str | Path,
        prefix: str = "vis",
        period: int = 1,
        disabled: bool = False,
    ) -> None:
        super().__init__(period, disabled)
        self.mesh = mesh
        self.directory = Path(directory)
        self.prefix = prefix
        self.files: list[Path] = []

    def create_timestep(self, time: float, cycle: int) -> None:
        super().create_timestep(time, cycle)
        self.directory.mkdir(parents=True, exist_ok=True)

    def write_vector(self, data, names, fieldname=None, location=None) -> None:
        if location is not None:
            if FieldLocation(location) is not FieldLocation.CELL:
                return
        elif data.shape[0] != self.mesh.n_cells:
            return
        from matplotlib.figure import Figure

        from pygeokernel.visualization.plot2d import plot_cell_field

        for i, name in enumerate(self._component_names(data, names, fieldname)):
            fig = Figure(figsize=(12, 4))
            ax = plot_cell_field(
                self.mesh, data[:, i], title=f"{name}, t = {self.time:g}",
                ax=fig.add_subplot(1, 1, 1),
            )
            path = self.directory / f"{self.prefix}_{self.cycle:05d}_{name}.png"
            ax.figure.savefig(path)
            self.files.append(path)
