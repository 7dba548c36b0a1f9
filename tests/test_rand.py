from xvkit.rand import Rand, do_rand


def test_first_value_from_zero_state():
    assert do_rand(0) == 16806


def test_ten_thousandth_value_matches_minimal_standard():
    gen = Rand(0)
    value = None
    for _ in range(10000):
        value = gen.rand()
    # The minimal standard check value is 1043618065; states are stored minus one.
    assert value == 1043618064


def test_values_stay_in_range():
    gen = Rand(1)
    for _ in range(2000):
        assert 0 <= gen.rand() <= 0x7FFFFFFD


def test_rand_matches_do_rand_chain():
    gen = Rand(12345)
    state = 12345
    for _ in range(50):
        state = do_rand(state)
        assert gen.rand() == state


def test_same_seed_same_sequence():
    a, b = Rand(7177), Rand(7177)
    assert [a.rand() for _ in range(20)] == [b.rand() for _ in range(20)]


def test_different_seeds_differ():
    a, b = Rand(1 ^ 31), Rand(1 ^ 7177)
    assert [a.rand() for _ in range(5)] != [b.rand() for _ in range(5)]


def test_state_is_taken_modulo():
    assert do_rand(0x7FFFFFFE) == do_rand(0)


def test_large_state_is_masked_to_64_bits():
    assert do_rand(5 + (1 << 64)) == do_rand(5)