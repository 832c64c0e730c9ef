"""Tests for the field record."""

import numpy as np
import pytest

from pygeokernel.geometry.primitives import Rectangle
from pygeokernel.state.errors import OwnershipError, StateErrorKind
from pygeokernel.state.field import Field, FieldLocation


def _mesh():
    domain = Rectangle(Lx=4, Ly=2)
    domain.add_subdomain("left", Rectangle(x0=0, y0=0, width=2, height=2))
    return domain.generate_mesh(resolution=1.0)


class TestField:
    def test_storage_shape(self):
        mesh = _mesh()
        f = Field("velocity", FieldLocation.CELL, mesh, "flow", num_dofs=2)
        assert f.shape == (mesh.n_cells, 2)
        assert not f.initialized
        assert f.io_vis

    def test_location_from_string(self):
        f = Field("flux", "face", _mesh(), "flow")
        assert f.location is FieldLocation.FACE

    def test_zero_dofs_rejected(self):
        with pytest.raises(ValueError):
            Field("p", FieldLocation.CELL, _mesh(), "flow", num_dofs=0)

    def test_subfield_names_must_match_dofs(self):
        f = Field("velocity", FieldLocation.CELL, _mesh(), "flow", num_dofs=2)
        with pytest.raises(ValueError, match="2 DOFs"):
            f.set_subfield_names(["u"])
        f.set_subfield_names(["u", "v"])
        assert f.subfield_names == ["u", "v"]

    def test_read_only_view(self):
        f = Field("p", FieldLocation.CELL, _mesh(), "flow")
        data = f.get_data()
        with pytest.raises(ValueError):
            data[0, 0] = 1.0

    def test_owner_gets_mutable_data(self):
        f = Field("p", FieldLocation.CELL, _mesh(), "flow")
        f.get_data("flow")[:] = 3.0
        np.testing.assert_array_equal(f.get_data(), 3.0)

    def test_non_owner_rejected(self):
        f = Field("p", FieldLocation.CELL, _mesh(), "flow")
        with pytest.raises(OwnershipError) as exc:
            f.get_data("energy")
        assert exc.value.kind is StateErrorKind.NOT_OWNER
        with pytest.raises(OwnershipError):
            f.set_data("energy", 1.0)

    def test_set_per_dof_constants(self):
        f = Field("velocity", FieldLocation.CELL, _mesh(), "flow", num_dofs=2)
        f.set_data("flow", [1.0, 2.0])
        np.testing.assert_array_equal(f.get_data()[:, 0], 1.0)
        np.testing.assert_array_equal(f.get_data()[:, 1], 2.0)

    def test_set_full_array(self):
        mesh = _mesh()
        f = Field("p", FieldLocation.CELL, mesh, "flow")
        values = np.arange(mesh.n_cells, dtype=float)
        f.set_data("flow", values)
        np.testing.assert_array_equal(f.get_data()[:, 0], values)

    def test_set_on_block(self):
        mesh = _mesh()
        f = Field("p", FieldLocation.CELL, mesh, "flow")
        f.set_data("flow", 5.0, mesh_block_id=1)
        data = f.get_data()[:, 0]
        np.testing.assert_array_equal(data[mesh.block_cells(1)], 5.0)
        np.testing.assert_array_equal(data[mesh.block_cells(0)], 0.0)

    def test_bad_shape(self):
        f = Field("velocity", FieldLocation.CELL, _mesh(), "flow", num_dofs=2)
        with pytest.raises(ValueError):
            f.set_data("flow", [1.0, 2.0, 3.0])

    def test_vector_data_on_faces(self):
        mesh = _mesh()
        f = Field("darcy_flux", FieldLocation.FACE, mesh, "flow")
        f.set_vector_data("flow", [1.0, 2.0, 0.0])
        expected = mesh.face_normals() @ np.array([1.0, 2.0, 0.0])
        np.testing.assert_allclose(f.get_data()[:, 0], expected)

    def test_vector_data_requires_face_field(self):
        f = Field("p", FieldLocation.CELL, _mesh(), "flow")
        with pytest.raises(ValueError, match="face"):
            f.set_vector_data("flow", [1.0, 0.0, 0.0])

    def test_set_data_pointer(self):
        mesh = _mesh()
        f = Field("p", FieldLocation.CELL, mesh, "flow")
        storage = np.ones((mesh.n_cells, 1))
        f.set_data_pointer("flow", storage)
        storage[0, 0] = 7.0
        assert f.get_data()[0, 0] == 7.0
        with pytest.raises(ValueError):
            f.set_data_pointer("flow", np.ones(mesh.n_cells))

    def test_copy_is_independent(self):
        f = Field("p", FieldLocation.CELL, _mesh(), "flow")
        f.set_subfield_names(["p"])
        g = f.copy()
        g.set_data("flow", 9.0)
        np.testing.assert_array_equal(f.get_data(), 0.0)
        assert g.subfield_names == ["p"]
        assert g.mesh is f.mesh

    def test_assign_from(self):
        f = Field("p", FieldLocation.CELL, _mesh(), "flow")
        g = f.copy()
        g.set_data("flow", 4.0)
        g.set_initialized()
        f.assign_from(g)
        np.testing.assert_array_equal(f.get_data(), 4.0)
        assert f.initialized
