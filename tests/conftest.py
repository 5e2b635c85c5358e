# Copyright (c) 2023 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from pathlib import Path

import pytest

SVD_TEXT = """\
<?xml version="1.0" encoding="utf-8"?>
<!-- Test device -->
<device schemaVersion="1.3" xmlns:xs="http://www.w3.org/2001/XMLSchema-instance"
        xs:noNamespaceSchemaLocation="CMSIS-SVD.xsd">
  <name>TESTDEV</name>
  <size>32</size>
  <access>read-write</access>
  <resetValue>0x00000000</resetValue>
  <peripherals>
    <peripheral>
      <name>UART0</name>
      <description>Universal
        asynchronous receiver</description>
      <groupName>UART</groupName>
      <baseAddress>0x40002000</baseAddress>
      <addressBlock>
        <offset>0</offset>
        <size>0x1000</size>
        <usage>registers</usage>
      </addressBlock>
      <registers>
        <register>
          <name>CTRL</name>
          <addressOffset>0x500</addressOffset>
          <resetValue>0x00000011</resetValue>
          <fields>
            <field>
              <name>ENABLE</name>
              <bitRange>[0:0]</bitRange>
            </field>
            <field>
              <name>MODE</name>
              <bitOffset>4</bitOffset>
              <bitWidth>4</bitWidth>
              <enumeratedValues>
                <name>Mode</name>
                <enumeratedValue>
                  <name>IDLE</name>
                  <value>1</value>
                </enumeratedValue>
                <enumeratedValue>
                  <name>ACTIVE</name>
                  <value>0xA</value>
                </enumeratedValue>
              </enumeratedValues>
            </field>
          </fields>
        </register>
      </registers>
    </peripheral>
    <peripheral derivedFrom="UART0">
      <name>UART1</name>
      <baseAddress>0x40003000</baseAddress>
    </peripheral>
  </peripherals>
</device>
"""


@pytest.fixture
def svd_file(tmp_path: Path) -> Path:
    """SVD file describing a device with two UART peripherals."""
    path = tmp_path / "device.svd"
    path.write_text(SVD_TEXT, encoding="utf-8")
    return path
