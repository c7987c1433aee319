"""3x3 linear system solver used for triangle containment.

Solves x * a + y * b + z * c = p for (x, y, z) by Gaussian elimination with
partial pivoting. The system is written as the augmented matrix

    | a.x  b.x  c.x | p.x |
    | a.y  b.y  c.y | p.y |
    | a.z  b.z  c.z | p.z |

and every column is pivoted by swapping in the row with the largest magnitude
entry. Rows below the pivot are eliminated without division,

    row <- pivot * row - row[col] * pivot_row

so the only divisions happen in the back substitution. Systems with integer
coefficients stay in exact integer arithmetic until then, and a unique integer
solution comes out exact. A pivot that is still zero after the swaps means the
three vectors do not span 3-space; this is reported as "no solution".

Example:
    >>> @ti.kernel
    ... def solve() -> vec3:
    ...     ok, w = solve_3x3(vec3(2, 5, -2), vec3(3, -1, -2),
    ...                       vec3(-4, 2, 3), vec3(-5, 15, 3))
    ...     return w  # exactly (2, 1, 3)
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

# Pivots with a smaller magnitude are treated as zero
PIVOT_EPSILON = 1e-12


@ti.func
def solve_3x3(a: vec3, b: vec3, c: vec3, p: vec3):
    """Solve x * a + y * b + z * c = p.

    Args:
        a: First column vector.
        b: Second column vector.
        c: Third column vector.
        p: Right-hand side.

    Returns:
        A tuple (solved, weights) where solved is 1 if a unique solution
        was found and 0 otherwise, and weights is vec3(x, y, z) (zero when
        solved == 0).
    """
    m = ti.Matrix(
        [
            [a.x, b.x, c.x, p.x],
            [a.y, b.y, c.y, p.y],
            [a.z, b.z, c.z, p.z],
        ],
        dt=ti.f32,
    )
    solved = 1

    for col in ti.static(range(3)):
        # Partial pivoting: bring the largest remaining entry of this column up
        for row in ti.static(range(col + 1, 3)):
            if ti.abs(m[row, col]) > ti.abs(m[col, col]):
                for k in ti.static(range(4)):
                    tmp = m[col, k]
                    m[col, k] = m[row, k]
                    m[row, k] = tmp

        if ti.abs(m[col, col]) < PIVOT_EPSILON:
            solved = 0

        if solved == 1:
            for row in ti.static(range(col + 1, 3)):
                pivot = m[col, col]
                f = m[row, col]
                for k in ti.static(range(col, 4)):
                    m[row, k] = pivot * m[row, k] - f * m[col, k]

    weights = vec3(0.0, 0.0, 0.0)
    if solved == 1:
        z = m[2, 3] / m[2, 2]
        y = (m[1, 3] - m[1, 2] * z) / m[1, 1]
        x = (m[0, 3] - m[0, 1] * y - m[0, 2] * z) / m[0, 0]
        weights = vec3(x, y, z)

    return solved, weights
