"""
CPU N-D strided slice kernels (forward gather and backward scatter).

Slice parameters
----------------
Each axis gets ``(start, stop, step)``. Axes not named in ``axes`` default
to the full range with step 1. ``start`` and ``stop`` may be negative, in
which case they count from the end (``dim + value``); both are then clamped
into ``[0, dim]``. ``step`` must be positive. The number of elements along an
axis is ``len(range(start, stop, step))``.

Index walk
----------
Axes are split into three groups:

- a leading run of full-range, unit-step axes, merged into one outer index
  that is partitioned across the worker pool;
- a trailing run of full-range, unit-step axes, merged into one contiguous
  inner run that is copied with `vectorize`; when there is no such run the
  last axis itself is the inner run, read with its fixed step;
- the axes in between, walked by recursive descent over axis positions,
  carrying the destination offset and the matching source offset
  (``(start + i * step) * in_stride`` per axis).

Backward is the exact dual: the same walk with the read and write roles
swapped scatters the upstream gradient into a zero-initialized buffer shaped
like the original operand. Distinct output positions map to distinct source
positions (steps are positive), so partitions never collide.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from ...domain._errors import BoundsError, NodeAttributeError, ShapeError
from ...domain._shape import TensorShape
from ..runtime._config import get_config
from ..runtime._parallel import parallelize, vectorize
from ..tensor._tensor import Tensor


@dataclass(frozen=True)
class SlicePlan:
    """
    Resolved per-axis slice parameters for one operand shape.

    Attributes
    ----------
    in_shape : TensorShape
        Operand shape.
    out_shape : TensorShape
        Sliced shape.
    starts, steps : tuple[int, ...]
        Clamped start and positive step for every axis.
    lead : int
        Number of leading full-range, unit-step axes (parallelized).
    inner : int
        First axis of the inner run.
    inner_len : int
        Number of elements in one inner run.
    inner_step : int
        Source step between consecutive inner-run elements.
    """

    in_shape: TensorShape
    out_shape: TensorShape
    starts: tuple[int, ...]
    steps: tuple[int, ...]
    lead: int
    inner: int
    inner_len: int
    inner_step: int


def _clamp(value: int, dim: int) -> int:
    if value < 0:
        value += dim
    return min(max(value, 0), dim)


def _as_tuple(name: str, values: Optional[Sequence[int]]) -> Optional[tuple[int, ...]]:
    if values is None:
        return None
    try:
        return tuple(int(v) for v in values)
    except TypeError as e:
        raise NodeAttributeError(name, f"expected a sequence of integers, got {values!r}") from e


def resolve_slice(
    shape: TensorShape,
    starts: Sequence[int],
    ends: Sequence[int],
    axes: Optional[Sequence[int]] = None,
    steps: Optional[Sequence[int]] = None,
) -> SlicePlan:
    """
    Resolve slice attributes against an operand shape.

    Parameters
    ----------
    shape : TensorShape
        Operand shape.
    starts, ends : Sequence[int]
        Per-listed-axis start (inclusive) and end (exclusive).
    axes : Optional[Sequence[int]], optional
        Axes the lists refer to. Defaults to ``0 .. len(starts) - 1``.
    steps : Optional[Sequence[int]], optional
        Positive steps. Defaults to all 1.

    Returns
    -------
    SlicePlan
        Per-axis parameters, the output shape and the walk partition.

    Raises
    ------
    NodeAttributeError
        If list lengths differ or a step is not positive.
    ShapeError
        If an axis is out of range or listed twice.
    """
    shape = TensorShape.of(shape)
    rank = shape.rank
    st = _as_tuple("starts", starts)
    en = _as_tuple("ends", ends)
    ax = _as_tuple("axes", axes)
    sp = _as_tuple("steps", steps)

    if st is None:
        raise NodeAttributeError("starts", "required attribute is missing")
    if en is None:
        raise NodeAttributeError("ends", "required attribute is missing")
    if len(st) != len(en):
        raise NodeAttributeError(
            "ends", f"expected {len(st)} values to match 'starts', got {len(en)}"
        )
    if ax is None:
        if len(st) > rank:
            raise ShapeError(f"{len(st)} slice bounds given for rank {rank}")
        ax = tuple(range(len(st)))
    if len(ax) != len(st):
        raise NodeAttributeError(
            "axes", f"expected {len(st)} values to match 'starts', got {len(ax)}"
        )
    if sp is None:
        sp = (1,) * len(st)
    if len(sp) != len(st):
        raise NodeAttributeError(
            "steps", f"expected {len(st)} values to match 'starts', got {len(sp)}"
        )

    full_starts = [0] * rank
    full_stops = list(shape.dims)
    full_steps = [1] * rank
    seen = set()
    for a, s, e, k in zip(ax, st, en, sp):
        if a < 0:
            a += rank
        if a < 0 or a >= rank:
            raise ShapeError(f"slice axis out of range for rank {rank}: {ax}")
        if a in seen:
            raise ShapeError(f"slice axis {a} listed more than once: {ax}")
        if k <= 0:
            raise NodeAttributeError("steps", f"steps must be positive, got {sp}")
        seen.add(a)
        d = shape.dims[a]
        full_starts[a] = _clamp(s, d)
        full_stops[a] = _clamp(e, d)
        full_steps[a] = k

    out_dims = tuple(
        len(range(b, e, k)) for b, e, k in zip(full_starts, full_stops, full_steps)
    )

    def trivial(a: int) -> bool:
        return (
            full_starts[a] == 0
            and out_dims[a] == shape.dims[a]
            and full_steps[a] == 1
        )

    inner = rank
    while inner > 0 and trivial(inner - 1):
        inner -= 1

    if inner < rank:
        inner_len = 1
        for d in shape.dims[inner:]:
            inner_len *= d
        inner_step = 1
    else:
        inner = rank - 1
        inner_len = out_dims[-1] if rank else 1
        inner_step = full_steps[-1] if rank else 1

    lead = 0
    while lead < inner and trivial(lead):
        lead += 1

    return SlicePlan(
        in_shape=shape,
        out_shape=TensorShape(out_dims),
        starts=tuple(full_starts),
        steps=tuple(full_steps),
        lead=lead,
        inner=max(inner, 0),
        inner_len=inner_len,
        inner_step=inner_step,
    )


def _walk(plan: SlicePlan, src: np.ndarray, dst: np.ndarray, scatter: bool) -> None:
    """
    Visit every inner run of the slice and copy it.

    With ``scatter=False`` the operand (`src`, shaped like ``in_shape``) is
    read into `dst` (shaped like ``out_shape``). With ``scatter=True`` the
    roles are swapped: `src` is shaped like ``out_shape`` and is written
    into `dst`, shaped like ``in_shape``.
    """
    in_dims = plan.in_shape.dims
    in_strides = plan.in_shape.strides
    out_dims = plan.out_shape.dims
    out_strides = plan.out_shape.strides
    rank = len(in_dims)
    lead, inner = plan.lead, plan.inner
    run, step = plan.inner_len, plan.inner_step
    in_size = plan.in_shape.num_elements()
    width = get_config().simd_width

    # Leading full-range axes are contiguous in both buffers and collapse to
    # one outer index with a fixed stride on each side.
    outer_n = 1
    for d in out_dims[:lead]:
        outer_n *= d
    outer_in = in_strides[lead - 1] if lead else 0
    outer_out = out_strides[lead - 1] if lead else 0

    def copy_run(out_off: int, in_off: int) -> None:
        last = in_off + (run - 1) * step
        if in_off < 0 or last >= in_size:
            raise BoundsError(
                f"slice run [{in_off}, {last}] outside operand of {in_size} elements"
            )

        def body(off: int, lanes: int) -> None:
            o = out_off + off
            i = in_off + off * step
            in_sl = slice(i, i + (lanes - 1) * step + 1, step)
            if scatter:
                dst[in_sl] = src[o : o + lanes]
            else:
                dst[o : o + lanes] = src[in_sl]

        vectorize(width, run, body)

    def descend(axis: int, out_off: int, in_off: int) -> None:
        if axis == inner:
            copy_run(out_off, in_off + plan.starts[inner] * in_strides[inner])
            return
        base = plan.starts[axis]
        k = plan.steps[axis]
        for j in range(out_dims[axis]):
            descend(
                axis + 1,
                out_off + j * out_strides[axis],
                in_off + (base + j * k) * in_strides[axis],
            )

    def partition(begin: int, end: int) -> None:
        for o in range(begin, end):
            descend(lead, o * outer_out, o * outer_in)

    if rank == 0 or plan.out_shape.num_elements() == 0:
        return
    parallelize(outer_n, partition)


def slice_forward(
    x: Tensor,
    starts: Sequence[int],
    ends: Sequence[int],
    axes: Optional[Sequence[int]] = None,
    steps: Optional[Sequence[int]] = None,
) -> Tensor:
    """
    Extract a strided N-D sub-block of `x` into a new tensor.

    Returns
    -------
    Tensor
        New tensor of shape ``resolve_slice(...).out_shape``.
    """
    plan = resolve_slice(x.shape, starts, ends, axes, steps)
    out = np.zeros(plan.out_shape.num_elements(), dtype=x.dtype)
    _walk(plan, x.data, out, scatter=False)
    return Tensor._wrap(plan.out_shape, out)


def slice_backward(
    grad_out: Tensor,
    in_shape: TensorShape,
    starts: Sequence[int],
    ends: Sequence[int],
    axes: Optional[Sequence[int]] = None,
    steps: Optional[Sequence[int]] = None,
) -> Tensor:
    """
    Scatter `grad_out` back into a zero tensor shaped like the operand.

    Raises
    ------
    ShapeError
        If `grad_out` does not have the sliced shape.
    """
    plan = resolve_slice(TensorShape.of(in_shape), starts, ends, axes, steps)
    if grad_out.shape != plan.out_shape:
        raise ShapeError(
            f"slice gradient has shape {grad_out.shape.dims}, "
            f"expected {plan.out_shape.dims}"
        )
    grad_in = np.zeros(plan.in_shape.num_elements(), dtype=grad_out.dtype)
    _walk(plan, grad_out.data, grad_in, scatter=True)
    return Tensor._wrap(plan.in_shape, grad_in)
