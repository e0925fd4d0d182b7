"""
CPU kernel libraries.

Elementwise, reduction, accumulation and structural kernels operating on
NumPy-backed `Tensor` buffers. Every kernel is composed from the runtime's
`vectorize` / `parallelize` primitives and writes a freshly allocated output,
except `accumulate_grad`, which mutates its accumulator in place.
"""

from .elementwise_cpu import unary_op, zip_op, scalar_op, elwise_op, expand_to, where_op
from .reduce_cpu import reduce_all, reduced_shape, tsum, tmax, tmean, tstd
from .accumulate_cpu import accumulate_grad, unbroadcast
from .transpose_cpu import transpose, transposed_shape, resolve_permutation, inverse_permutation
from .slice_cpu import SlicePlan, resolve_slice, slice_forward, slice_backward
from .reshape_cpu import (
    squeeze_shape,
    unsqueeze_shape,
    reshape_shape,
    reshape_copy,
    squeeze,
    unsqueeze,
)

__all__ = [
    unary_op.__name__,
    zip_op.__name__,
    scalar_op.__name__,
    elwise_op.__name__,
    expand_to.__name__,
    where_op.__name__,
    reduce_all.__name__,
    reduced_shape.__name__,
    tsum.__name__,
    tmax.__name__,
    tmean.__name__,
    tstd.__name__,
    accumulate_grad.__name__,
    unbroadcast.__name__,
    transpose.__name__,
    transposed_shape.__name__,
    resolve_permutation.__name__,
    inverse_permutation.__name__,
    SlicePlan.__name__,
    resolve_slice.__name__,
    slice_forward.__name__,
    slice_backward.__name__,
    squeeze_shape.__name__,
    unsqueeze_shape.__name__,
    reshape_shape.__name__,
    reshape_copy.__name__,
    squeeze.__name__,
    unsqueeze.__name__,
]
