import numpy as np
import pytest

from dicebrain import ConfigurationError, DeserializationError, FeedforwardNetwork, NetworkParameters, ShapeMismatchError


def make_net(seed=42, shape=(12, 24, 8), lr=0.5):
    return FeedforwardNetwork(*shape, learning_rate=lr, rng=np.random.default_rng(seed))


def test_same_seed_same_outputs():
    x = np.linspace(0, 1, 12)
    a = make_net(seed=7)
    b = make_net(seed=7)
    np.testing.assert_array_equal(a.predict(x), b.predict(x))
    c = make_net(seed=8)
    assert not np.array_equal(a.predict(x), c.predict(x))


def test_outputs_strictly_inside_unit_interval():
    net = make_net()
    for x in (np.zeros(12), np.ones(12), np.full(12, 1e6), np.full(12, -1e6)):
        out = net.predict(x)
        assert out.shape == (8,)
        assert np.all(out > 0.0) and np.all(out < 1.0)


def test_initial_weights_in_range():
    p = make_net().parameters
    for arr in (p.w1, p.b1, p.w2, p.b2):
        assert np.all(arr >= -1.0) and np.all(arr < 1.0)
    assert p.shape == (12, 24, 8)


def test_invalid_dimensions_fail_fast():
    with pytest.raises(ConfigurationError):
        FeedforwardNetwork(0, 4, 2)
    with pytest.raises(ConfigurationError):
        FeedforwardNetwork(3, 4, 2, learning_rate=0.0)


def test_wrong_input_length():
    net = make_net()
    with pytest.raises(ShapeMismatchError) as ei:
        net.predict(np.zeros(11))
    assert ei.value.expected == 12 and ei.value.actual == 11


def test_bad_example_leaves_parameters_untouched():
    net = make_net()
    before = net.parameters.copy()
    good = (np.zeros(12), np.zeros(8))
    bad = (np.zeros(12), np.zeros(7))
    with pytest.raises(ShapeMismatchError):
        net.train_batch([good, bad], epochs=3)
    np.testing.assert_array_equal(net.parameters.w1, before.w1)
    np.testing.assert_array_equal(net.parameters.b2, before.b2)


def test_training_reduces_error():
    net = FeedforwardNetwork(2, 4, 1, learning_rate=0.5, rng=np.random.default_rng(1))
    examples = [([0, 0], [0.1]), ([1, 1], [0.9])]

    def error():
        return sum(float((net.predict(x)[0] - y[0]) ** 2) for x, y in examples)

    before = error()
    assert net.train_batch(examples, epochs=300) == 300
    assert error() < before


def test_should_stop_checked_between_epochs():
    net = make_net()
    calls = []

    def stop():
        calls.append(1)
        return len(calls) > 2

    done = net.train_batch([(np.zeros(12), np.zeros(8))], epochs=10, should_stop=stop)
    assert done == 2


def test_copy_is_independent():
    net = make_net()
    clone = net.copy()
    clone.train_batch([(np.ones(12), np.ones(8))], epochs=5)
    assert not np.array_equal(net.parameters.w2, clone.parameters.w2)


def test_load_parameters_rejects_wrong_shape():
    net = make_net()
    other = make_net(shape=(12, 10, 8))
    with pytest.raises(ConfigurationError):
        net.load_parameters(other.parameters)


def test_dict_round_trip_and_bad_document():
    a = make_net(seed=3)
    b = make_net(seed=4)
    b.load_dict(a.to_dict())
    x = np.linspace(0, 1, 12)
    np.testing.assert_array_equal(a.predict(x), b.predict(x))

    with pytest.raises(DeserializationError):
        b.load_dict({"weights": [[[1.0]]]})
    with pytest.raises(DeserializationError):
        b.load_dict(make_net(shape=(12, 5, 8)).to_dict())
    with pytest.raises(DeserializationError):
        NetworkParameters.from_lists([1, 2, 3], [1])


def test_from_dict_infers_shape():
    a = make_net(seed=9, shape=(18, 36, 6))
    b = FeedforwardNetwork.from_dict(a.to_dict())
    assert (b.input_size, b.hidden_size, b.output_size) == (18, 36, 6)
    x = np.linspace(0, 1, 18)
    np.testing.assert_array_equal(a.predict(x), b.predict(x))
    with pytest.raises(DeserializationError):
        FeedforwardNetwork.from_dict({"weights": [[1.0], [2.0]], "biases": [[0.0], [0.0]]})


def test_single_update_matches_hand_computed_step():
    net = FeedforwardNetwork(2, 2, 1, learning_rate=0.5, rng=np.random.default_rng(0))
    w1 = np.array([[0.1, -0.2], [0.3, 0.4]])
    b1 = np.array([0.05, -0.05])
    w2 = np.array([[0.7], [-0.6]])
    b2 = np.array([0.2])
    net.load_parameters(NetworkParameters(w1.copy(), b1.copy(), w2.copy(), b2.copy()))
    x = np.array([1.0, 0.5])
    t = np.array([1.0])

    def sig(z):
        return 1.0 / (1.0 + np.exp(-z))

    h = sig(x @ w1 + b1)
    o = sig(h @ w2 + b2)
    delta_o = (t - o) * o * (1.0 - o)
    # hidden delta uses W2 before this step's update
    delta_h = (w2 @ delta_o) * h * (1.0 - h)

    assert net.train_batch([(x, t)], epochs=1) == 1
    p = net.parameters
    np.testing.assert_allclose(p.w2, w2 + 0.5 * np.outer(h, delta_o), rtol=1e-12)
    np.testing.assert_allclose(p.b2, b2 + 0.5 * delta_o, rtol=1e-12)
    np.testing.assert_allclose(p.w1, w1 + 0.5 * np.outer(x, delta_h), rtol=1e-12)
    np.testing.assert_allclose(p.b1, b1 + 0.5 * delta_h, rtol=1e-12)
