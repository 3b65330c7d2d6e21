import pytest

from devplug.allocate import AllocationError, distributed_alloc
from devplug.devices import Device, Devices, get_id, new_annotated_id


def _replicated(*uuids, replicas=2):
    ids = [new_annotated_id(u, i) for u in uuids for i in range(replicas)]
    return Devices((i, Device(id=i, replicas=replicas)) for i in ids)


def test_spreads_over_gpus():
    devices = _replicated("GPU-a", "GPU-b")
    result = distributed_alloc(devices, list(devices), [], 2)
    assert len(result) == 2
    assert {get_id(r) for r in result} == {"GPU-a", "GPU-b"}


def test_prefers_least_used_gpu():
    devices = _replicated("GPU-a", "GPU-b")
    available = [i for i in devices if i != new_annotated_id("GPU-a", 0)]
    result = distributed_alloc(devices, available, [], 1)
    assert get_id(result[0]) == "GPU-b"


def test_required_come_first():
    devices = _replicated("GPU-a", "GPU-b")
    required = [new_annotated_id("GPU-a", 0)]
    result = distributed_alloc(devices, list(devices), required, 2)
    assert result[0] == required[0]
    assert get_id(result[1]) == "GPU-b"
    assert len(set(result)) == 2


def test_results_are_available_devices():
    devices = _replicated("GPU-a", "GPU-b", "GPU-c", replicas=3)
    available = list(devices)[:5]
    result = distributed_alloc(devices, available, [], 4)
    assert len(result) == 4
    assert set(result) <= set(available)


def test_not_enough_devices():
    devices = _replicated("GPU-a")
    with pytest.raises(AllocationError):
        distributed_alloc(devices, list(devices), [], 3)


def test_only_required():
    devices = _replicated("GPU-a")
    required = [new_annotated_id("GPU-a", 1)]
    assert distributed_alloc(devices, list(devices), required, 1) == required