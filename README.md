# devplug

devplug provides building blocks for a node agent that hands GPUs to
containers. It contains no GPU driver bindings. Callers describe devices through
small `DeviceInfo` objects, or the package reads PCI data from sysfs. The
package then handles device bookkeeping, allocation and request checks.

## What is in the package

* **`devplug.devices`**
  * `Device` is a dataclass. It holds an ID, index, device paths, total memory,
    compute capability, replica count, health and an optional NUMA node.
    * `is_mig_device()` is true when the index contains `:`.
    * `aligned_allocation_supported()` is false for MIG devices and for devices
      with the path `/dev/dxg`.
    * `get_uuid()` drops any replica annotation from the ID.
  * `Devices` is a `dict` of devices keyed by ID, with these helpers:
    `contains`, `get_by_id`, `get_by_index`, `subset`, `difference`, `get_ids`,
    `get_uuids`, `get_indices`, `get_paths` and `aligned_allocation_supported`.
  * `DeviceInfo` is the abstract source of device details. `build_device(index,
    info)` turns one into a healthy `Device`.
  * `TegraDevice` is a `DeviceInfo` with these fixed values: UUID `tegra`, no
    paths, no NUMA node, zero memory, compute capability `0.0`.
  * Annotated replica IDs look like `GPU-xyz::3`. These functions build and take
    them apart: `new_annotated_id`, `split_annotated_id`, `get_id`,
    `has_annotations`, `any_has_annotations` and `strip_annotations`.
  * `nul_terminated_string` decodes a NUL-terminated sequence of signed or
    unsigned bytes.
* **`devplug.device_map.DeviceMap`** is a `dict` that maps resource names to
  `Devices`. It offers `insert`, `merge`, `is_empty` and `set_entry`. Inserting
  a device whose ID is already present replaces the existing device.
* **`devplug.allocate.distributed_alloc(devices, available, required, size)`**
  * The required IDs come first in the result.
  * It then picks the remaining devices one at a time. Each pick comes from the
    GPU with the fewest of its replicas already in use.
  * It raises `AllocationError` when there are too few candidates.
* **`devplug.rm`**
  * `ResourceManager` holds a resource name, its `Devices`, a `SharingStrategy`
    (`NONE`, `TIME_SLICING`, `MPS`) and a `fail_requests_greater_than_one` flag.
  * `validate_request(ids)` raises `InvalidRequestError` in three cases:
    * an ID is unknown;
    * under MPS, the request has more than one replica ID;
    * under time-slicing with the flag set, the request has more than one
      replica ID.
  * `TegraResourceManager` adds `get_preferred_allocation`, which uses
    `distributed_alloc`, and `get_device_paths`. Its `check_health` returns
    straight away.
* **`devplug.health`**
  * `health_checks_disabled` and `skipped_xids` read a setting in the format of
    the `DP_DISABLE_HEALTHCHECKS` environment variable. By default they read the
    variable itself.
    * `all`, or any value containing `xids`, disables the checks.
    * Otherwise the value is a comma-separated list of extra Xids to ignore.
      These are added to the built-in application-error Xids 13, 31, 43, 45
      and 68.
  * `get_additional_xids` parses such a list. It skips malformed entries.
  * `parse_mig_device_uuid` splits `MIG-GPU-<uuid>/<gi>/<ci>` into its three
    parts. It raises `MigUUIDError` when the UUID does not have that form.
* **`devplug.resource`**
  * `Manager` is the abstract manager interface, with `init`, `shutdown`,
    `get_devices`, `get_driver_version` and `get_cuda_driver_version`.
  * `NullManager` has no devices. Both of its version methods raise
    `UnsupportedError`.
  * `FallbackToNullManager` wraps another manager. If the wrapped manager's
    `init` fails, it logs a warning and switches to a `NullManager`.
* **`devplug.pciutil`**
  * `NvidiaPCILib(root="/sys/bus/pci/devices").devices()` lists the PCI devices
    with vendor `0x10de` as `PCIDevice` objects, ordered by address.
  * `PCIDevice.get_vendor_specific_capability()` walks the capability list in
    the device's configuration space. It raises `PCIError` when fewer than 256
    bytes were read.
  * `get_byte`, `get_word` and `get_long` read little-endian values.
  * `MockNvidiaPCI` and `new_mock_nvidia_pci()` supply fixed sample devices:
    one passthrough GPU and one vGPU.
* **`devplug.vgpu`**
  * `Lib(pci).devices()` returns the devices whose vendor capability carries
    the `VF` signature.
  * `Device.get_info()` reads the host driver version and branch into an
    `Info`. It raises `VGPUError` when there is no driver version record.
  * `new_mock_vgpu()` uses the mock PCI data.
* **`devplug.watch`**
  * `watch_files(*paths)` starts watching files and directories. It raises
    `FileNotFoundError` for a missing path. File system events arrive on the
    watcher's `events` queue. Call `close()` or use the watcher as a context
    manager to stop it.
  * `watch_signals(*signals)` installs handlers for the given signals. It
    returns a queue of size one that receives them.

## Installation

```
pip install devplug
```

## Examples

```python
from devplug.vgpu import new_mock_vgpu

for device in new_mock_vgpu().devices():
    info = device.get_info()
    print(info.host_driver_version, info.host_driver_branch)
```

This uses the built-in mock PCI data and prints `460.16 r460_00`.

```python
from devplug.devices import new_annotated_id, split_annotated_id

annotated = new_annotated_id("GPU-0", 2)
print(annotated)                      # GPU-0::2
print(split_annotated_id(annotated))  # ('GPU-0', 2)
```

```python
from devplug.devices import Device, Devices
from devplug.rm import InvalidRequestError, ResourceManager, SharingStrategy

devices = Devices({i: Device(id=i) for i in ["GPU-0::0", "GPU-0::1"]})
manager = ResourceManager("nvidia.com/gpu", devices, SharingStrategy.MPS)
manager.validate_request(["GPU-0::0"])  # accepted
try:
    manager.validate_request(["GPU-0::0", "GPU-0::1"])
except InvalidRequestError as err:
    print(err)  # invalid request: maximum request size for shared resources is 1; found 2
```

## What the package does not do

* It has no command-line program.
* It does not talk to the kubelet.
* It does not load a configuration file.
* It has no bindings to a GPU management or CUDA library. Because of that it
  cannot do the following:
  * enumerate GPUs or MIG devices by itself;
  * build a `DeviceMap` from a configuration;
  * run the event loop that marks devices unhealthy;
  * compute topology-aligned allocations.
* The `health` module only interprets the health-check settings and MIG UUIDs.

Callers supply devices through `DeviceInfo` objects or build `Devices`
directly.

## Running the tests

```
pip install -e ".[test]"
pytest
```