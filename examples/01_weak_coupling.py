# ---
# jupyter:
#   jupytext:
#     text_representation:
#       extension: .py
#       format_name: percent
#       format_version: '1.3'
#   kernelspec:
#     display_name: Python 3
#     language: python
#     name: python3
# ---

# %% [markdown]
# # 01 — Weakly Coupled Process Kernels
#
# Two process kernels share one field registry.  The *air* kernel
# relaxes the air temperature toward 10 °C; the *soil* kernel relaxes
# the soil temperature toward the air temperature it reads from the
# registry.  Initial temperatures come from configuration: a domain-wide
# constant, overridden on the clay mesh block.
#
# **Coupling strategy**: `pygeokernel.coupling.WeakMPC`
# (air first, soil second, no feedback within a step)

# %%
import numpy as np
from pygeokernel import (
    configure_logging, geometry, state, pk, coupling, time, postprocess,
)

configure_logging("INFO")

# %% [markdown]
# ## 1. Domain, mesh blocks and mesh

# %%
domain = geometry.Rectangle(Lx=20, Ly=10)
domain.add_subdomain("clay", geometry.Rectangle(x0=0, y0=0, width=20, height=4), block_id=2)
mesh = domain.generate_mesh(resolution=1.0)
print(mesh)

# %% [markdown]
# ## 2. Registry and initial conditions

# %%
S = state.State(mesh, {
    "Gravity x": 0.0,
    "Gravity y": -9.81,
    "Gravity z": 0.0,
    "Constant water density": 1000.0,
    "Constant T_air": 0.0,
    "Constant T_soil": 2.0,
    "Number of mesh blocks": 1,
    "Mesh block 1": {"Mesh block ID": 2, "Constant T_soil": 4.0},
})

# %% [markdown]
# ## 3. Process kernels

# %%
air = pk.RelaxationPK({
    "Primary variable": "T_air",
    "Target value": 10.0,
    "Relaxation rate": 1.0 / 3600.0,
    "Initial time step": 600.0,
}, name="air")
soil = pk.RelaxationPK({
    "Primary variable": "T_soil",
    "Target field": "T_air",
    "Relaxation rate": 1.0 / 7200.0,
    "Initial time step": 600.0,
    "Maximum time step": 300.0,
}, name="soil")
mpc = coupling.WeakMPC([air, soil], name="surface")

# %% [markdown]
# ## 4. Run
#
# The soil kernel rejects steps longer than 300 s, so the driver halves
# the 600 s step requested by the coupler.

# %%
vis = postprocess.MemoryVis(period=4)
driver = time.Coordinator(mpc, S, time.TimeControl(t_end=3 * 3600.0), vis=vis)
cycles = driver.run()
print(f"{cycles} cycles, {driver.n_failures} failed attempts")

# %%
T_soil = S.get_field("T_soil")[:, 0]
for block in mesh.block_ids:
    cells = mesh.block_cells(block)
    print(f"block {block}: mean soil temperature {T_soil[cells].mean():.2f} °C")
print("air temperature:", np.unique(S.get_field("T_air").round(3)))
