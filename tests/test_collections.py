import pytest

from vybe.collection_types import DictionaryVal, HashSetVal, KeyedCollection, ListVal, QueueVal, StackVal
from vybe.errors import VybeError
from vybe.types import ArrayVal, NOTHING, TypeSpec


def test_list_coerces_to_element_type():
    items = ListVal(elem_type=TypeSpec.integer())
    items.add('7')
    items.insert(0, 2.5)
    assert items.items == [2, 7]
    with pytest.raises(VybeError) as excinfo:
        items.get(2)
    assert excinfo.value.category == 'ArgumentOutOfRangeException'


def test_dictionary_keys_keep_insertion_order():
    d = DictionaryVal(TypeSpec.string(), TypeSpec.integer())
    d.add('b', 1)
    d.add('a', 2)
    d.set('B', 5)
    assert d.keys() == ['b', 'a']
    assert d.values() == [5, 2]
    assert d.try_get('missing') == (False, NOTHING)
    with pytest.raises(VybeError) as excinfo:
        d.add('a', 3)
    assert excinfo.value.category == 'ArgumentException'
    with pytest.raises(VybeError) as excinfo:
        d.get('zzz')
    assert excinfo.value.category == 'KeyNotFoundException'


def test_keyed_collection_before_and_keys():
    c = KeyedCollection()
    c.add('first', 'k1')
    c.add('second')
    c.add('zeroth', 'k0', before=0)
    assert c.values() == ['zeroth', 'first', 'second']
    assert c.item('K1') == 'first'
    assert c.contains('k0')
    c.remove('k0')
    assert not c.contains('k0')
    with pytest.raises(VybeError) as excinfo:
        c.add('again', 'K1')
    assert excinfo.value.message == 'Add failed. Duplicate key value supplied.'


def test_queue_and_stack_order():
    q = QueueVal([1, 2, 3])
    assert q.dequeue() == 1
    assert q.peek() == 2
    s = StackVal([1, 2, 3])
    assert s.pop() == 3
    assert s.top_first() == [2, 1]
    with pytest.raises(VybeError) as excinfo:
        QueueVal().dequeue()
    assert excinfo.value.message == 'Queue empty.'


def test_hash_set_distinguishes_booleans_from_numbers():
    h = HashSetVal([1, True, 1])
    assert len(h) == 2
    assert not h.add(True)
    assert h.contains(1)


def test_two_dimensional_array_bounds():
    grid = ArrayVal(TypeSpec.integer(), [2, 3])
    grid.set([1, 2], 9)
    assert grid.get([1, 2]) == 9
    assert grid.items[5] == 9
    assert grid.upper_bound(1) == 2
    with pytest.raises(VybeError) as excinfo:
        grid.get([2, 0])
    assert excinfo.value.number == 9


def test_array_resize_preserve():
    a = ArrayVal.from_list([1, 2, 3], TypeSpec.integer())
    bigger = a.resized([5], preserve=True)
    assert bigger.items == [1, 2, 3, 0, 0]
    cleared = a.resized([2], preserve=False)
    assert cleared.items == [0, 0]
