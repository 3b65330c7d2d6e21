import pytest

from devplug.pciutil import (
    MockNvidiaPCI,
    NvidiaPCILib,
    PCIDevice,
    PCIError,
    get_byte,
    get_long,
    get_word,
    new_mock_nvidia_pci,
)


def _device(config, address="dev"):
    return PCIDevice(path="", address=address, pci_class="300", vendor="0x10de", config=config)


def test_get_vendor_specific_capability_from_mock():
    devices = new_mock_nvidia_pci().devices()
    assert [d.address for d in devices] == ["passthrough", "vgpu"]
    for device in devices:
        assert f"0x{get_word(device.config, 0):x}" == "0x10de"
        capability = device.get_vendor_specific_capability()
        assert capability
        if device.address == "passthrough":
            assert len(capability) == 20
        if device.address == "vgpu":
            assert len(capability) == 27


def test_short_config_raises():
    with pytest.raises(PCIError, match="entire PCI configuration is not read"):
        _device(bytes(64)).get_vendor_specific_capability()


def test_no_capability_list_returns_none():
    assert _device(bytes(256)).get_vendor_specific_capability() is None


def test_looped_chain_returns_none():
    config = bytearray(256)
    config[0x06] = 0x10
    config[0x34] = 0x40
    config[0x40:0x43] = bytes([0x01, 0x50, 0x04])
    config[0x50:0x53] = bytes([0x05, 0x40, 0x04])
    assert _device(bytes(config)).get_vendor_specific_capability() is None


def test_broken_chain_returns_none():
    config = bytearray(256)
    config[0x06] = 0x10
    config[0x34] = 0x40
    config[0x40:0x43] = bytes([0xFF, 0x50, 0x04])
    config[0x50:0x53] = bytes([0x09, 0x00, 0x04])
    assert _device(bytes(config)).get_vendor_specific_capability() is None


def test_capability_found_after_chain():
    config = bytearray(256)
    config[0x06] = 0x10
    config[0x34] = 0x40
    config[0x40:0x43] = bytes([0x01, 0x60, 0x04])
    config[0x60:0x64] = bytes([0x09, 0x00, 0x04, 0xAA])
    assert _device(bytes(config)).get_vendor_specific_capability() == bytes([0x09, 0x00, 0x04, 0xAA])


def test_byte_helpers():
    buffer = bytes([0x78, 0x56, 0x34, 0x12])
    assert get_byte(buffer, 2) == 0x34
    assert get_word(buffer, 0) == 0x5678
    assert get_long(buffer, 0) == 0x12345678


def test_word_out_of_range():
    with pytest.raises(IndexError):
        get_word(bytes([0x01]), 0)


def test_mock_returns_given_devices():
    device = _device(bytes(256), address="only")
    assert MockNvidiaPCI([device]).devices() == [device]


def _write_device(root, address, vendor, pci_class="0x030000\n", config=b"\x00" * 256):
    path = root / address
    path.mkdir()
    (path / "vendor").write_text(vendor)
    (path / "class").write_text(pci_class)
    (path / "config").write_bytes(config)


def test_nvidia_pci_lib_reads_sysfs(tmp_path):
    _write_device(tmp_path, "0000:02:00.0", "0x10de\n")
    _write_device(tmp_path, "0000:01:00.0", "0x8086\n")
    _write_device(tmp_path, "0000:03:00.0", "0x10de\n", config=b"\x01\x02")

    devices = NvidiaPCILib(tmp_path).devices()

    assert [d.address for d in devices] == ["0000:02:00.0", "0000:03:00.0"]
    assert devices[0].vendor == "0x10de"
    assert devices[0].pci_class == "0x03"
    assert devices[0].path == str(tmp_path / "0000:02:00.0")
    assert devices[1].config == b"\x01\x02"


def test_nvidia_pci_lib_missing_root(tmp_path):
    with pytest.raises(PCIError, match="unable to read PCI bus devices"):
        NvidiaPCILib(tmp_path / "missing").devices()


def test_nvidia_pci_lib_missing_class(tmp_path):
    path = tmp_path / "0000:02:00.0"
    path.mkdir()
    (path / "vendor").write_text("0x10de")
    with pytest.raises(PCIError, match="unable to read PCI device class for 0000:02:00.0"):
        NvidiaPCILib(tmp_path).devices()