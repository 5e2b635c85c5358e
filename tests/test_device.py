# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

import logging

import pytest

import svdtree
from helpers import (
    cluster,
    device,
    enum_value,
    enumeration,
    field,
    peripheral,
    register,
)
from svdtree import (
    Access,
    Cluster,
    Field,
    NumberFormat,
    Options,
    Register,
    SvdDefinitionError,
    SvdKeyError,
    SvdMemoryError,
    parse_descriptor,
)
from svdtree._device import ParseContext
from svdtree.bindings import DEFAULT_REGISTER_PROPERTIES, PeripheralElement
from svdtree.device import Peripheral


def uart(**kwargs):
    """Peripheral with a control register containing an enable bit and a mode field."""
    return peripheral(
        "UART0",
        "0x40002000",
        registers=[
            register(
                "CTRL",
                "0x500",
                resetValue="0x11",
                fields=[
                    field("ENABLE", bitOffset=0, bitWidth=1),
                    field(
                        "MODE",
                        bitOffset=4,
                        bitWidth=4,
                        enumeratedValues=enumeration(
                            enum_value("IDLE", 1), enum_value("ACTIVE", 10), name="Mode"
                        ),
                    ),
                ],
            ),
            register(
                "STATUS",
                "0x504",
                access="read-only",
                fields=[field("READY", bitOffset=0, bitWidth=1)],
            ),
        ],
        **kwargs,
    )


def test_device_basics():
    dev = parse_descriptor(device(uart()))

    assert dev.name == "TESTDEV"
    assert list(dev) == ["UART0"]
    assert isinstance(dev["UART0"], Peripheral)
    assert dev.register_properties == DEFAULT_REGISTER_PROPERTIES

    uart0 = dev["UART0"]
    assert uart0.base_address == 0x40002000
    assert uart0.address == 0x40002000
    assert list(uart0) == ["CTRL", "STATUS"]
    assert uart0["CTRL"].address == 0x40002500
    assert uart0["STATUS"].address == 0x40002504
    assert uart0["CTRL"]["MODE"].address == 0x40002500


def test_missing_elements_raise_key_error():
    dev = parse_descriptor(device(uart()))

    with pytest.raises(SvdKeyError):
        dev["UART1"]
    with pytest.raises(KeyError):
        dev["UART0"]["NOPE"]
    with pytest.raises(SvdKeyError):
        dev["UART0"]["CTRL"]["NOPE"]


def test_find_by_path():
    dev = parse_descriptor(device(uart()))
    mode = dev["UART0"]["CTRL"]["MODE"]

    assert dev.find_by_path("UART0") is dev["UART0"]
    assert dev.find_by_path("UART0.CTRL.MODE") is mode
    assert dev.find_by_path(["UART0", "CTRL", "MODE"]) is mode
    assert dev["UART0"].find_by_path("CTRL.MODE") is mode
    assert dev.find_by_path("UART0.CTRL.NOPE") is None
    assert dev.find_by_path("UART9") is None
    assert mode.path == "UART0.CTRL.MODE"


def test_find_by_path_empty_or_malformed():
    dev = parse_descriptor(device(uart()))
    uart0 = dev["UART0"]
    ctrl = uart0["CTRL"]

    assert uart0.find_by_path([]) is uart0
    assert ctrl.find_by_path(()) is ctrl
    assert uart0.find_by_path("") is None
    assert uart0.find_by_path("CTRL..MODE") is None
    assert dev.find_by_path([]) is None
    assert dev.find_by_path("") is None
    assert dev.find_by_path("UART0..CTRL") is None
    assert dev.find_by_path("UART0.") is None


def test_register_array_expansion():
    dev = parse_descriptor(
        device(
            peripheral(
                "DMA",
                "0x40000000",
                registers=[
                    register(
                        "CH%s",
                        "0x10",
                        dim=3,
                        dimIncrement=4,
                        description="Channel %s",
                    )
                ],
            )
        )
    )
    dma = dev["DMA"]

    assert list(dma) == ["CH0", "CH1", "CH2"]
    assert [dma[n].offset for n in dma] == [0x10, 0x14, 0x18]
    assert [dma[n].address for n in dma] == [0x40000010, 0x40000014, 0x40000018]
    assert dma["CH2"].description == "Channel 2"


def test_register_array_dim_index():
    dev = parse_descriptor(
        device(
            peripheral(
                "P",
                registers=[register("REG_%s", 0, dim=2, dimIncrement=4, dimIndex="RX,TX")],
            )
        )
    )
    assert list(dev["P"]) == ["REG_RX", "REG_TX"]


def test_field_array_expansion():
    dev = parse_descriptor(
        device(
            peripheral(
                "GPIO",
                registers=[
                    register(
                        "OUT",
                        0,
                        fields=[
                            field("PIN%s", bitOffset=0, bitWidth=1, dim=4, dimIncrement=1),
                        ],
                    )
                ],
            )
        )
    )
    out = dev["GPIO"]["OUT"]

    assert list(out) == ["PIN0", "PIN1", "PIN2", "PIN3"]
    assert [f.offset for f in out.values()] == [0, 1, 2, 3]


def test_empty_array(caplog):
    caplog.set_level(logging.WARNING, logger="svdtree")

    dev = parse_descriptor(
        device(peripheral("P", registers=[register("R%s", 0, dim=0, dimIncrement=4)]))
    )

    assert len(dev["P"]) == 0
    assert "produces no elements" in caplog.text


def test_dim_without_increment():
    with pytest.raises(SvdDefinitionError, match="with no dimIncrement"):
        parse_descriptor(device(peripheral("P", registers=[register("R%s", 0, dim=2)])))


def test_malformed_dim_index():
    with pytest.raises(SvdDefinitionError, match="Invalid dimIndex"):
        parse_descriptor(
            device(
                peripheral(
                    "P",
                    registers=[register("R%s", 0, dim=2, dimIncrement=4, dimIndex="A-A")],
                )
            )
        )


def test_missing_bit_range():
    with pytest.raises(SvdDefinitionError, match="Field 'F' must have either"):
        parse_descriptor(
            device(peripheral("P", registers=[register("R", 0, fields=[field("F")])]))
        )


def test_zero_width_field_warns(caplog):
    caplog.set_level(logging.WARNING, logger="svdtree")

    dev = parse_descriptor(
        device(
            peripheral(
                "P", registers=[register("R", 0, fields=[field("F", msb=3, lsb=4)])]
            )
        )
    )

    assert dev["P"]["R"]["F"].width == 0
    assert "has bit width 0" in caplog.text


def test_fields_sorted_by_offset():
    dev = parse_descriptor(
        device(
            peripheral(
                "P",
                registers=[
                    register(
                        "R",
                        0,
                        fields=[
                            field("HIGH", bitRange="[31:16]"),
                            field("LOW", bitOffset=0, bitWidth=8),
                            field("MID", msb=15, lsb=8),
                        ],
                    )
                ],
            )
        )
    )
    register_ = dev["P"]["R"]
    assert list(register_) == ["LOW", "MID", "HIGH"]
    assert register_["HIGH"].bit_range_str == "[31:16]"
    assert register_["MID"].mask == 0xFF00


def test_children_sorted_by_offset():
    dev = parse_descriptor(
        device(
            peripheral(
                "P",
                registers=[register("B", 8), register("A", 4)],
                clusters=[cluster("C", 0, registers=[register("X", 0)])],
            )
        )
    )
    assert list(dev["P"]) == ["C", "A", "B"]


def test_register_inheritance():
    dev = parse_descriptor(
        device(
            peripheral(
                "P",
                registers=[
                    register("COPY", derived_from="CTRL", description="Copy of CTRL"),
                    register(
                        "CTRL",
                        "0x20",
                        size=16,
                        access="read-only",
                        description="Control",
                        fields=[field("EN", bitOffset=0, bitWidth=1)],
                    ),
                ],
            )
        )
    )
    ctrl = dev["P"]["CTRL"]
    copy = dev["P"]["COPY"]

    assert copy.offset == ctrl.offset == 0x20
    assert copy.size == 16
    assert copy.access == Access.READ_ONLY
    assert copy.description == "Copy of CTRL"
    assert list(copy) == ["EN"]
    assert copy.derived_from == "CTRL"
    assert ctrl.derived_from is None


def test_register_inheritance_across_peripherals():
    dev = parse_descriptor(
        device(
            peripheral("A", "0x1000", registers=[register("CFG", 4, size=8)]),
            peripheral("B", "0x2000", registers=[register("CFG2", derived_from="A.CFG")]),
        )
    )
    cfg2 = dev["B"]["CFG2"]
    assert cfg2.offset == 4
    assert cfg2.size == 8
    assert cfg2.address == 0x2004


def test_register_invalid_derived_from():
    with pytest.raises(SvdDefinitionError, match="Invalid 'derivedFrom' \"NOPE\""):
        parse_descriptor(
            device(peripheral("P", registers=[register("R", 0, derived_from="NOPE")]))
        )


def test_shared_enumeration():
    dev = parse_descriptor(
        device(
            peripheral(
                "P",
                registers=[
                    register(
                        "R",
                        0,
                        fields=[
                            field(
                                "A",
                                bitOffset=0,
                                bitWidth=2,
                                enumeratedValues=enumeration(
                                    enum_value("ON", 1), enum_value("AUTO", 2), name="Shared"
                                ),
                            ),
                            field(
                                "B",
                                bitOffset=2,
                                bitWidth=2,
                                enumeratedValues=enumeration(derived_from="Shared"),
                            ),
                        ],
                    )
                ],
            )
        )
    )
    a = dev["P"]["R"]["A"]
    b = dev["P"]["R"]["B"]

    assert a.enumeration is not None
    assert a.enumeration is b.enumeration
    assert b.enum_values == {"ON": 1, "AUTO": 2}
    with pytest.raises(TypeError):
        b.enumeration[3] = a.enumeration[1]  # type: ignore


@pytest.mark.parametrize(
    "reference", ["Shared", "A.Shared", "R.A.Shared", "P.R.A.Shared"]
)
def test_enumeration_qualified_names(reference):
    dev = parse_descriptor(
        device(
            peripheral(
                "P",
                registers=[
                    register(
                        "R",
                        0,
                        fields=[
                            field(
                                "A",
                                bitOffset=0,
                                bitWidth=1,
                                enumeratedValues=enumeration(
                                    enum_value("ON", 1), name="Shared"
                                ),
                            )
                        ],
                    ),
                    register(
                        "S",
                        4,
                        fields=[
                            field(
                                "B",
                                bitOffset=0,
                                bitWidth=1,
                                enumeratedValues=enumeration(derived_from=reference),
                            )
                        ],
                    ),
                ],
            )
        )
    )
    assert dev["P"]["S"]["B"].enumeration is dev["P"]["R"]["A"].enumeration


def test_enumeration_invalid_derived_from():
    with pytest.raises(SvdDefinitionError, match="Invalid derivedFrom 'Missing'"):
        parse_descriptor(
            device(
                peripheral(
                    "P",
                    registers=[
                        register(
                            "R",
                            0,
                            fields=[
                                field(
                                    "F",
                                    bitOffset=0,
                                    bitWidth=1,
                                    enumeratedValues=enumeration(derived_from="Missing"),
                                )
                            ],
                        )
                    ],
                )
            )
        )


def zero_enumeration_device():
    """Device with a field whose enumeration holds a zero, a don't-care and a binary value."""
    return device(
        peripheral(
            "P",
            registers=[
                register(
                    "R",
                    0,
                    fields=[
                        field(
                            "F",
                            bitOffset=0,
                            bitWidth=2,
                            enumeratedValues=enumeration(
                                enum_value("ZERO", 0),
                                enum_value("ANY", "0bx1"),
                                enum_value("THREE", "#11"),
                            ),
                        )
                    ],
                )
            ],
        )
    )


def test_enumeration_skips_zero_and_unparseable_values():
    dev = parse_descriptor(zero_enumeration_device())
    f = dev["P"]["R"]["F"]

    assert f.enum_values == {"THREE": 3}
    assert f.formatted_value == "Unknown Enumeration Value (0x0)"


def test_enumeration_keeps_zero_values():
    options = Options(keep_zero_enumerated_values=True)
    dev = parse_descriptor(zero_enumeration_device(), options)
    f = dev["P"]["R"]["F"]

    assert f.enum_values == {"ZERO": 0, "THREE": 3}
    assert f.formatted_value == "ZERO (0x0)"


def test_registries_are_parse_scoped():
    with_shared = device(
        peripheral(
            "P",
            registers=[
                register(
                    "R",
                    0,
                    fields=[
                        field(
                            "A",
                            bitOffset=0,
                            bitWidth=1,
                            enumeratedValues=enumeration(enum_value("ON", 1), name="Shared"),
                        )
                    ],
                )
            ],
        )
    )
    only_reference = device(
        peripheral(
            "Q",
            registers=[
                register(
                    "R",
                    0,
                    fields=[
                        field(
                            "B",
                            bitOffset=0,
                            bitWidth=1,
                            enumeratedValues=enumeration(derived_from="Shared"),
                        )
                    ],
                ),
                register("S", 4, derived_from="P.R"),
            ],
        )
    )

    parse_descriptor(with_shared)
    with pytest.raises(SvdDefinitionError):
        parse_descriptor(only_reference)


def test_cluster_addresses():
    dev = parse_descriptor(
        device(
            peripheral(
                "P",
                "0x40000000",
                clusters=[
                    cluster(
                        "GROUP",
                        "0x100",
                        registers=[register("REG", "0x10")],
                        clusters=[cluster("INNER", "0x20", registers=[register("DEEP", 4)])],
                    )
                ],
            )
        )
    )
    group = dev["P"]["GROUP"]

    assert isinstance(group, Cluster)
    assert group.address == 0x40000100
    assert group["REG"].address == 0x40000110
    assert dev.find_by_path("P.GROUP.INNER.DEEP").address == 0x40000124


def test_cluster_array():
    dev = parse_descriptor(
        device(
            peripheral(
                "P",
                clusters=[
                    cluster(
                        "CH[%s]",
                        "0x100",
                        registers=[register("CFG", 0)],
                        dim=2,
                        dimIncrement="0x10",
                    )
                ],
            )
        )
    )
    assert list(dev["P"]) == ["CH[0]", "CH[1]"]
    assert dev["P"]["CH[1]"]["CFG"].address == 0x40000110


def test_empty_clusters():
    descriptor = device(
        peripheral("P", clusters=[cluster("EMPTY", 0), cluster("FULL", 4, registers=[register("R", 0)])])
    )

    assert list(parse_descriptor(descriptor)["P"]) == ["FULL"]
    assert list(parse_descriptor(descriptor, Options(drop_empty_clusters=False))["P"]) == [
        "EMPTY",
        "FULL",
    ]


def test_access_propagation():
    dev = parse_descriptor(
        device(
            peripheral(
                "P",
                access="write-only",
                registers=[
                    register(
                        "R",
                        0,
                        access="read-write",
                        fields=[field("F", bitOffset=0, bitWidth=1, access="read-only")],
                    )
                ],
                clusters=[
                    cluster(
                        "C",
                        4,
                        access="read-only",
                        registers=[
                            register(
                                "S",
                                0,
                                fields=[field("G", bitOffset=0, bitWidth=1, access="write-only")],
                            )
                        ],
                    )
                ],
            )
        )
    )
    p = dev["P"]

    assert p.access == Access.WRITE_ONLY
    assert p["R"].access == Access.WRITE_ONLY
    assert p["R"]["F"].access == Access.WRITE_ONLY
    assert p["C"].access == Access.WRITE_ONLY
    assert p["C"]["S"]["G"].access == Access.WRITE_ONLY


def test_device_defaults():
    dev = parse_descriptor(
        device(
            peripheral("P", registers=[register("R", 0)]),
            size=16,
            access="read-only",
            resetValue="0xABCD",
        )
    )
    r = dev["P"]["R"]
    assert r.size == 16
    assert r.access == Access.READ_ONLY
    assert r.reset_value == 0xABCD


def test_peripheral_properties():
    dev = parse_descriptor(
        device(
            peripheral(
                "P",
                "0x40001000",
                description="Line one\n      line two",
                groupName="GRP",
                addressBlock=[
                    {"offset": ["0"], "size": ["0x800"]},
                    {"offset": ["0x800"], "size": ["0x100"]},
                ],
            )
        )
    )
    p = dev["P"]
    assert p.description == "Line one line two"
    assert p.group_name == "GRP"
    assert p.total_length == 0x900
    assert len(p.memory) == 0x900


def test_invalid_base_address(caplog):
    caplog.set_level(logging.WARNING, logger="svdtree")
    dev = parse_descriptor(device(peripheral("P", "not-a-number")))
    assert dev["P"].base_address == 0
    assert "baseAddress" in caplog.text


def test_peripherals_sorted():
    dev = parse_descriptor(
        device(
            peripheral("B", "0x2000"),
            peripheral("Z", "0x1000"),
            peripheral("A", "0x2000"),
        )
    )
    assert list(dev) == ["Z", "A", "B"]


def test_peripheral_without_name():
    with pytest.raises(SvdDefinitionError, match="Peripheral has no name"):
        parse_descriptor(device({"baseAddress": ["0x1000"]}))


def test_missing_device_or_peripherals():
    with pytest.raises(SvdDefinitionError, match="no device element"):
        parse_descriptor({"notdevice": {}})
    with pytest.raises(SvdDefinitionError, match="no peripherals element"):
        parse_descriptor({"device": {"name": ["TESTDEV"]}})


def peripheral_chain():
    return device(
        peripheral("C", "0x3000", derived_from="B"),
        peripheral("B", "0x2000", derived_from="A", description="Derived"),
        peripheral(
            "A",
            "0x1000",
            description="Base",
            registers=[register("R", 4, resetValue=7)],
        ),
    )


def test_peripheral_inheritance_chain():
    dev = parse_descriptor(peripheral_chain())

    assert list(dev) == ["A", "B", "C"]
    assert dev["B"].derived_from == "A"
    assert dev["C"].derived_from == "B"
    assert dev["C"].description == "Derived"
    assert dev["C"]["R"].address == 0x3004
    assert dev["C"]["R"].content == 7


def test_peripheral_inheritance_single_pass():
    dev = parse_descriptor(peripheral_chain(), Options(resolve_derived_chains=False))

    assert list(dev["B"]) == ["R"]
    assert len(dev["C"]) == 0


def test_peripheral_missing_base(caplog):
    caplog.set_level(logging.WARNING, logger="svdtree")

    dev = parse_descriptor(device(peripheral("B", derived_from="NOPE")))

    assert dev["B"].derived_from == "NOPE"
    assert "which does not exist" in caplog.text


def test_peripheral_cycle():
    with pytest.raises(SvdDefinitionError, match="form a cycle"):
        parse_descriptor(
            device(
                peripheral("A", derived_from="B"),
                peripheral("B", derived_from="A"),
            )
        )


def test_address_before_assignment():
    element = PeripheralElement(peripheral("P", registers=[register("R", 4)]))
    p = Peripheral(element, DEFAULT_REGISTER_PROPERTIES, ParseContext(), Options())

    with pytest.raises(SvdMemoryError):
        p.address
    with pytest.raises(SvdMemoryError):
        p["R"].address

    p.mark_addresses()
    assert p["R"].address == 0x40000004


def test_register_content():
    dev = parse_descriptor(device(uart()))
    ctrl = dev["UART0"]["CTRL"]

    assert ctrl.content == 0x11
    assert not ctrl.modified

    ctrl.content = 0xA1
    assert ctrl.content == 0xA1
    assert ctrl.modified
    assert ctrl.extract_bits(4, 4) == 0xA
    assert ctrl.extract_bits_from_reset(0, 1) == 1

    with pytest.raises(SvdMemoryError):
        ctrl.set_content(1 << 32)


def test_register_update_bits():
    dev = parse_descriptor(device(uart()))
    ctrl = dev["UART0"]["CTRL"]

    assert ctrl.update_bits(4, 4, 0xA) == 0xA1
    assert ctrl.content == 0xA1

    with pytest.raises(SvdMemoryError):
        ctrl.update_bits(4, 4, 0x10)
    assert ctrl.content == 0xA1


def test_field_update():
    dev = parse_descriptor(device(uart()))
    mode = dev["UART0"]["CTRL"]["MODE"]

    assert mode.update("ACTIVE") == 0xA1
    assert mode.content == 10
    assert mode.reset_content == 1

    mode.content = 0
    assert dev["UART0"]["CTRL"].content == 0x01

    with pytest.raises(SvdMemoryError):
        mode.update("BOGUS")
    with pytest.raises(SvdMemoryError):
        mode.update(16)


def test_read_only_field_update():
    dev = parse_descriptor(device(uart()))

    with pytest.raises(SvdMemoryError, match="read-only"):
        dev["UART0"]["STATUS"]["READY"].update(1)


def test_field_parse_value():
    dev = parse_descriptor(device(uart()))
    mode = dev["UART0"]["CTRL"]["MODE"]

    assert mode.parse_value("ACTIVE") == 10
    assert mode.parse_value("0x3") == 3
    with pytest.raises(SvdMemoryError, match="expected one of IDLE, ACTIVE"):
        mode.parse_value("fast")


def test_field_formatting():
    dev = parse_descriptor(
        device(
            peripheral(
                "P",
                registers=[
                    register(
                        "R",
                        0,
                        resetValue=10,
                        fields=[
                            field("RAW", bitOffset=0, bitWidth=8),
                            field(
                                "STATE",
                                bitOffset=0,
                                bitWidth=8,
                                enumeratedValues=enumeration(enum_value("ACTIVE", 10)),
                            ),
                            field("SECRET", bitOffset=8, bitWidth=8, access="write-only"),
                        ],
                    )
                ],
            )
        )
    )
    r = dev["P"]["R"]
    raw = r["RAW"]
    state = r["STATE"]

    assert raw.format_value(10, NumberFormat.BINARY) == "0b00001010"
    assert raw.format_value(10, NumberFormat.HEXADECIMAL) == "0x0A"
    assert raw.format_value(10, NumberFormat.DECIMAL) == "10"
    assert raw.formatted_value == "0x0A"

    assert state.formatted_value == "ACTIVE (0x0A)"
    assert state.format_value(3) == "Unknown Enumeration Value (0x03)"
    assert state.format_value(10, include_enumeration=False) == "0x0A"
    assert state.copy_value() == "0x0A"
    assert state.enumeration_name(10) == "ACTIVE"
    assert state.enumeration_name(3) is None

    assert r["SECRET"].formatted_value == "(Write Only)"


def test_format_inheritance():
    dev = parse_descriptor(device(uart()), Options(default_format=NumberFormat.DECIMAL))
    uart0 = dev["UART0"]
    mode = uart0["CTRL"]["MODE"]

    assert mode.get_format() == NumberFormat.DECIMAL
    assert mode.formatted_value == "IDLE (1)"

    uart0.format = NumberFormat.BINARY
    assert mode.formatted_value == "IDLE (0b0001)"

    uart0["CTRL"].format = NumberFormat.HEXADECIMAL
    assert mode.formatted_value == "IDLE (0x1)"

    mode.format = NumberFormat.DECIMAL
    assert mode.formatted_value == "IDLE (1)"


def test_register_formatted_value():
    dev = parse_descriptor(device(uart()))
    ctrl = dev["UART0"]["CTRL"]
    ctrl.content = 0xA1

    assert ctrl.formatted_value() == "0x000000A1"
    assert ctrl.formatted_value(NumberFormat.DECIMAL) == "161"
    assert ctrl.formatted_value(NumberFormat.BINARY) == (
        "0b0000 0000 0000 0000 0000 0000 1010 0001"
    )


def test_load_memory():
    dev = parse_descriptor(device(uart()))
    uart0 = dev["UART0"]

    uart0.load_memory(bytes([0x78, 0x56, 0x34, 0x12]), offset=0x504)

    assert uart0["STATUS"].content == 0x12345678
    assert uart0["CTRL"].content == 0x11


def test_registers_iter():
    dev = parse_descriptor(
        device(
            peripheral(
                "P",
                registers=[register("A", 0)],
                clusters=[cluster("C", 4, registers=[register("B", 0), register("D", 4)])],
            )
        )
    )
    assert [r.name for r in dev["P"].register_iter()] == ["A", "B", "D"]
    assert all(isinstance(r, Register) for r in dev["P"].register_iter())


def test_node_repr():
    dev = parse_descriptor(device(uart()))

    assert repr(dev["UART0"]) == "[UART0 @ 0x40002000 {Peripheral}]"
    assert repr(dev["UART0"]["CTRL"]) == "[UART0.CTRL @ 0x40002500 = 0x00000011 {Register}]"
    assert isinstance(dev["UART0"]["CTRL"]["ENABLE"], Field)


def test_log_is_package_logger():
    assert svdtree.log.name == "svdtree"
