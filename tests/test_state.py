"""Tests for the field registry."""

import copy

import numpy as np
import pytest

from pygeokernel.geometry.primitives import Rectangle
from pygeokernel.postprocess.vis import MemoryVis
from pygeokernel.state import (
    OWNER_STATE,
    DoubleOwnershipError,
    FieldLocation,
    IncompatibleStateError,
    OwnershipError,
    SignatureConflictError,
    State,
    StateErrorKind,
    UninitializedFieldsError,
)

CELL = FieldLocation.CELL
FACE = FieldLocation.FACE

GRAVITY = {"Gravity x": 0.0, "Gravity y": 0.0, "Gravity z": -9.81}


def _mesh():
    domain = Rectangle(Lx=4, Ly=2)
    domain.add_subdomain("left", Rectangle(x0=0, y0=0, width=2, height=2))
    return domain.generate_mesh(resolution=1.0)


def _state(**params):
    return State(_mesh(), {**GRAVITY, **params})


# ======================================================================
# Registration
# ======================================================================

class TestRequireField:
    def test_creates_field_once(self):
        S = _state()
        S.require_field("pressure", CELL, "flow")
        S.require_field("pressure", CELL)
        S.require_field("temperature", CELL, "energy")
        S.require_field("pressure", CELL)
        assert S.field_names == ["pressure", "temperature"]
        assert len(S) == 2
        assert S.get_field_record("pressure").owner == "flow"

    def test_sentinel_owned_field_can_be_claimed(self):
        S = _state()
        S.require_field("porosity", CELL)
        assert S.get_field_record("porosity").owner == OWNER_STATE
        handle = S.require_field("porosity", CELL, "mechanics")
        assert S.get_field_record("porosity").owner == "mechanics"
        assert handle.writable

    def test_unclaimed_fields_stay_with_state(self):
        S = _state()
        handle = S.require_field("porosity", CELL)
        S.require_field("porosity", CELL)
        assert S.get_field_record("porosity").owner == OWNER_STATE
        assert not handle.writable

    @pytest.mark.parametrize("first_owner,second_owner", [
        (OWNER_STATE, "flow"),
        (OWNER_STATE, OWNER_STATE),
        ("flow", OWNER_STATE),
    ])
    def test_location_mismatch(self, first_owner, second_owner):
        S = _state()
        S.require_field("pressure", CELL, first_owner)
        with pytest.raises(SignatureConflictError) as exc:
            S.require_field("pressure", FACE, second_owner)
        message = str(exc.value)
        assert "pressure" in message
        assert "cell" in message and "face" in message
        assert exc.value.kind is StateErrorKind.SIGNATURE_CONFLICT

    def test_location_mismatch_either_order(self):
        S = _state()
        S.require_field("flux", FACE, "flow")
        with pytest.raises(SignatureConflictError):
            S.require_field("flux", CELL)

    def test_dof_mismatch(self):
        S = _state()
        S.require_field("velocity", CELL, "flow", num_dofs=2)
        with pytest.raises(SignatureConflictError):
            S.require_field("velocity", CELL, OWNER_STATE, num_dofs=3)

    def test_double_ownership(self):
        S = _state()
        S.require_field("pressure", CELL, "flow")
        with pytest.raises(DoubleOwnershipError) as exc:
            S.require_field("pressure", CELL, "energy")
        assert "flow" in str(exc.value)
        assert exc.value.fieldname == "pressure"

    def test_same_owner_cannot_claim_twice(self):
        S = _state()
        S.require_field("pressure", CELL, "flow")
        with pytest.raises(DoubleOwnershipError):
            S.require_field("pressure", CELL, "flow")

    def test_failed_request_leaves_owner(self):
        S = _state()
        S.require_field("pressure", CELL, "flow")
        with pytest.raises(DoubleOwnershipError):
            S.require_field("pressure", CELL, "energy")
        assert S.get_field_record("pressure").owner == "flow"

    def test_try_require_reports_kind(self):
        S = _state()
        assert S.try_require_field("pressure", CELL, "flow").ok
        result = S.try_require_field("pressure", CELL, "energy")
        assert not result.ok
        assert result.handle is None
        assert result.error is StateErrorKind.DOUBLE_OWNERSHIP
        result = S.try_require_field("pressure", FACE)
        assert result.error is StateErrorKind.SIGNATURE_CONFLICT

    def test_no_registration_after_derive(self):
        S = _state()
        S.require_field("pressure", CELL, "flow")
        S.derive()
        with pytest.raises(IncompatibleStateError):
            S.require_field("temperature", CELL, "energy")


# ======================================================================
# Initialization
# ======================================================================

class TestInitialize:
    def test_constant_pressure(self):
        S = _state(**{"Constant pressure": 101325.0})
        S.require_field("pressure", CELL, "flow-pk")
        S.set_subfield_names("pressure", ["pressure"])
        report = S.initialize()
        np.testing.assert_array_equal(S.get_field("pressure"), 101325.0)
        assert S.check_all_initialized()
        assert report.global_fields == ["pressure"]

    def test_global_constants(self):
        S = _state(**{
            "Constant water density": 998.2,
            "Constant viscosity": 1e-3,
        })
        S.initialize()
        np.testing.assert_array_equal(S.gravity, [0.0, 0.0, -9.81])
        assert S.density == 998.2
        assert S.viscosity == 1e-3

    def test_gravity_required(self):
        S = State(_mesh(), {"Gravity x": 0.0, "Gravity y": 0.0})
        with pytest.raises(KeyError, match="Gravity z"):
            S.initialize()

    def test_partial_coverage_assigns_nothing(self):
        S = _state(**{"Constant u": 1.0})
        S.require_field("velocity", CELL, "flow", num_dofs=2)
        S.set_subfield_names("velocity", ["u", "v"])
        S.initialize()
        np.testing.assert_array_equal(S.get_field("velocity"), 0.0)
        assert not S.check_all_initialized()
        assert S.uninitialized_fields() == ["velocity"]

    def test_multi_dof_constants(self):
        S = _state(**{"Constant u": 1.0, "Constant v": -2.0})
        S.require_field("velocity", CELL, "flow", num_dofs=2)
        S.set_subfield_names("velocity", ["u", "v"])
        S.initialize()
        np.testing.assert_array_equal(S.get_field("velocity")[:, 0], 1.0)
        np.testing.assert_array_equal(S.get_field("velocity")[:, 1], -2.0)

    def test_field_without_names_is_skipped(self):
        S = _state(**{"Constant pressure": 1.0})
        S.require_field("pressure", CELL, "flow")
        S.initialize()
        assert not S.check_all_initialized()

    def test_face_fields_skipped_in_global_pass(self):
        S = _state(**{"Constant flux": 1.0})
        S.require_field("flux", FACE, "flow")
        S.set_subfield_names("flux", ["flux"])
        S.initialize()
        assert S.uninitialized_fields() == ["flux"]

    def test_mesh_block_cell_constants(self):
        S = _state(**{
            "Number of mesh blocks": 2,
            "Mesh block 1": {"Mesh block ID": 1, "Constant temperature": 270.0},
            "Mesh block 2": {"Mesh block ID": 0, "Constant temperature": 280.0},
        })
        S.require_field("temperature", CELL, "energy")
        S.set_subfield_names("temperature", ["temperature"])
        report = S.initialize()
        T = S.get_field("temperature")[:, 0]
        np.testing.assert_array_equal(T[S.mesh.block_cells(1)], 270.0)
        np.testing.assert_array_equal(T[S.mesh.block_cells(0)], 280.0)
        assert report.block_fields == {1: ["temperature"], 0: ["temperature"]}
        assert S.check_all_initialized()

    def test_missing_mesh_block_sublist(self):
        S = _state(**{"Number of mesh blocks": 1})
        with pytest.raises(KeyError, match="Mesh block 1"):
            S.initialize()
        assert "Mesh block 1" not in S.parameters
        assert S.parameters.to_dict() == {**GRAVITY, "Number of mesh blocks": 1}

    def test_mesh_block_face_vector(self):
        S = _state(**{
            "Number of mesh blocks": 1,
            "Mesh block 1": {
                "Mesh block ID": 1,
                "Constant darcy_flux x": 1.0,
                "Constant darcy_flux y": 0.0,
                "Constant darcy_flux z": 0.0,
            },
        })
        S.require_field("darcy_flux", FACE, "flow")
        S.initialize()
        flux = S.get_field("darcy_flux")[:, 0]
        faces = S.mesh.block_faces(1)
        expected = S.mesh.face_normals()[:, 0]
        np.testing.assert_allclose(flux[faces], expected[faces])
        outside = np.setdiff1d(np.arange(S.mesh.n_faces), faces)
        np.testing.assert_array_equal(flux[outside], 0.0)
        assert S.check_all_initialized()

    def test_mesh_block_face_vector_incomplete(self):
        S = _state(**{
            "Number of mesh blocks": 1,
            "Mesh block 1": {
                "Mesh block ID": 1,
                "Constant darcy_flux x": 1.0,
                "Constant darcy_flux y": 0.0,
            },
        })
        S.require_field("darcy_flux", FACE, "flow")
        S.initialize()
        np.testing.assert_array_equal(S.get_field("darcy_flux"), 0.0)
        assert not S.check_all_initialized()

    def test_owner_initialized_fields_count(self):
        S = _state()
        handle = S.require_field("pressure", CELL, "flow")
        S.initialize()
        assert not S.check_all_initialized()
        handle.set(1.0)
        handle.set_initialized()
        assert S.check_all_initialized()

    def test_require_all_initialized(self):
        S = _state()
        S.require_field("pressure", CELL, "flow")
        S.require_field("temperature", CELL, "energy")
        with pytest.raises(UninitializedFieldsError) as exc:
            S.require_all_initialized()
        assert exc.value.fieldnames == ["pressure", "temperature"]


# ======================================================================
# Access
# ======================================================================

class TestAccess:
    def test_read_only_access(self):
        S = _state()
        S.require_field("pressure", CELL, "flow")
        with pytest.raises(ValueError):
            S.get_field("pressure")[0, 0] = 1.0

    def test_owner_access(self):
        S = _state()
        S.require_field("pressure", CELL, "flow")
        S.get_field("pressure", "flow")[:] = 2.0
        np.testing.assert_array_equal(S.get_field("pressure"), 2.0)

    def test_non_owner_access(self):
        S = _state()
        S.require_field("pressure", CELL, "flow")
        with pytest.raises(OwnershipError):
            S.get_field("pressure", "energy")
        with pytest.raises(OwnershipError):
            S.set_field("pressure", "energy", 1.0)

    def test_unknown_field(self):
        with pytest.raises(KeyError, match="nope"):
            _state().get_field("nope")
        assert "nope" not in _state()

    def test_setters(self):
        S = _state()
        S.require_field("pressure", CELL, "flow")
        S.require_field("flux", FACE, "flow")
        S.set_field("pressure", "flow", 3.0, mesh_block_id=1)
        S.set_vector_field("flux", "flow", [0.0, 1.0, 0.0])
        p = S.get_field("pressure")[:, 0]
        assert np.all(p[S.mesh.block_cells(1)] == 3.0)
        assert np.all(p[S.mesh.block_cells(0)] == 0.0)
        np.testing.assert_allclose(
            S.get_field("flux")[:, 0], S.mesh.face_normals()[:, 1],
        )
        storage = np.full((S.mesh.n_cells, 1), 8.0)
        S.set_field_pointer("pressure", "flow", storage)
        assert S.get_field("pressure", "flow") is storage

    def test_reader_handle_is_read_only(self):
        S = _state()
        S.require_field("pressure", CELL, "flow")
        reader = S.require_field("pressure", CELL)
        assert not reader.writable
        assert reader.data.shape == (S.mesh.n_cells, 1)
        with pytest.raises(OwnershipError):
            reader.set(1.0)

    def test_writer_handle(self):
        S = _state()
        writer = S.require_field("velocity", CELL, "flow", num_dofs=2)
        writer.set_subfield_names(["u", "v"])
        writer.set([1.0, 2.0])
        writer.get_data()[0] = [5.0, 6.0]
        np.testing.assert_array_equal(S.get_field("velocity")[0], [5.0, 6.0])
        np.testing.assert_array_equal(S.get_field("velocity")[1], [1.0, 2.0])

    def test_gravity_setter(self):
        S = _state()
        S.set_gravity([0.0, -9.8, 0.0])
        g = S.gravity
        g[1] = 0.0
        assert S.gravity[1] == -9.8
        with pytest.raises(ValueError):
            S.set_gravity([0.0, 1.0])


# ======================================================================
# Snapshots
# ======================================================================

class TestSnapshots:
    def _populated(self):
        S = _state()
        S.require_field("pressure", CELL, "flow")
        S.require_field("flux", FACE, "flow")
        S.set_field("pressure", "flow", 1.0)
        S.set_density(1000.0)
        S.time = 3.0
        S.cycle = 2
        return S

    def test_derive_is_deep(self):
        A = self._populated()
        B = A.derive()
        assert B.signature() == A.signature()
        assert B.field_names == A.field_names
        B.set_field("pressure", "flow", 7.0)
        B.set_density(1.0)
        np.testing.assert_array_equal(A.get_field("pressure"), 1.0)
        assert A.density == 1000.0
        assert B.time == 3.0 and B.cycle == 2
        assert A.shares_structure_with(B)

    def test_copy_module_derives(self):
        A = self._populated()
        for B in (copy.copy(A), copy.deepcopy(A)):
            B.set_field("pressure", "flow", 7.0)
            np.testing.assert_array_equal(A.get_field("pressure"), 1.0)

    def test_assign_from(self):
        A = self._populated()
        B = A.derive()
        B.set_field("pressure", "flow", 5.0)
        B.time = 4.0
        B.cycle = 3
        B.status = 1
        B.set_gravity([1.0, 2.0, 3.0])
        A.assign_from(B)
        np.testing.assert_array_equal(A.get_field("pressure"), 5.0)
        assert (A.time, A.cycle, A.status) == (4.0, 3, 1)
        np.testing.assert_array_equal(A.gravity, [1.0, 2.0, 3.0])
        B.set_field("pressure", "flow", 6.0)
        np.testing.assert_array_equal(A.get_field("pressure"), 5.0)

    def test_assign_from_different_count(self):
        A = self._populated()
        C = _state()
        C.require_field("pressure", CELL, "flow")
        C.set_field("pressure", "flow", 9.0)
        C.time = 10.0
        with pytest.raises(IncompatibleStateError) as exc:
            C.assign_from(A)
        assert exc.value.kind is StateErrorKind.INCOMPATIBLE_STATE
        np.testing.assert_array_equal(C.get_field("pressure"), 9.0)
        assert C.time == 10.0

    def test_assign_from_different_signature(self):
        A = _state()
        A.require_field("pressure", CELL, "flow")
        B = _state()
        B.require_field("pressure", FACE, "flow")
        with pytest.raises(IncompatibleStateError):
            A.assign_from(B)

    def test_assign_from_self(self):
        A = self._populated()
        A.assign_from(A)
        np.testing.assert_array_equal(A.get_field("pressure"), 1.0)

    def test_handle_rebinding(self):
        A = self._populated()
        handle = A.handle("pressure", "flow")
        B = A.derive()
        handle.on(B).set(2.0)
        np.testing.assert_array_equal(B.get_field("pressure"), 2.0)
        np.testing.assert_array_equal(A.get_field("pressure"), 1.0)
        with pytest.raises(IncompatibleStateError):
            handle.on(_state())


# ======================================================================
# Visualization
# ======================================================================

class TestWriteVis:
    def _state(self):
        S = _state()
        S.require_field("pressure", CELL, "flow")
        S.set_subfield_names("pressure", ["pressure"])
        S.require_field("velocity", CELL, "flow", num_dofs=2)
        S.set_subfield_names("velocity", ["u", "v"])
        S.require_field("scratch", CELL, "flow")
        S.get_field_record("scratch").set_io_vis(False)
        S.set_field("pressure", "flow", 1.5)
        S.time = 2.0
        S.cycle = 4
        return S

    def test_writes_flagged_fields(self):
        S = self._state()
        vis = MemoryVis(period=2)
        assert S.write_vis(vis)
        snap = vis.snapshots[0]
        assert (snap["time"], snap["cycle"]) == (2.0, 4)
        assert list(snap["fields"]) == ["pressure", "u", "v"]
        np.testing.assert_array_equal(snap["fields"]["pressure"], 1.5)

    def test_not_due(self):
        S = self._state()
        vis = MemoryVis(period=3)
        assert not S.write_vis(vis)
        assert vis.snapshots == []

    def test_disabled(self):
        S = self._state()
        vis = MemoryVis(disabled=True)
        assert not S.write_vis(vis)
        assert vis.snapshots == []
