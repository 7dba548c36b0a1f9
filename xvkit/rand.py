"""Park-Miller minimal standard pseudo-random generator."""

_MASK64 = (1 << 64) - 1


def do_rand(ctx: int) -> int:
    """Advance the generator state ctx and return the new state.

    The result lies in [0, 0x7ffffffd] and is also the next state.
    """
    x = ((ctx & _MASK64) % 0x7FFFFFFE) + 1
    hi, lo = divmod(x, 127773)
    x = 16807 * lo - 2836 * hi
    if x < 0:
        x += 0x7FFFFFFF
    return x - 1


class Rand:
    """A generator holding its own state."""

    def __init__(self, seed: int = 1) -> None:
        self.state = seed & _MASK64

    def rand(self) -> int:
        self.state = do_rand(self.state)
        return self.state