"""
tests/conftest.py

Shared configuration documents. ``SAMPLE_CONFXML`` mirrors a small FreeBSD
machine: one GPT-partitioned disk whose first partition backs a /dev node and
whose second partition carries a GPT label.
"""

from __future__ import annotations

import pytest

from geom_graph import Graph, build_graph


SAMPLE_CONFXML = """<?xml version="1.0"?>
<mesh>
  <class id="0xffffffff81c1a2d0">
    <name>DISK</name>
    <geom id="0xfffff80003a1b100">
      <class ref="0xffffffff81c1a2d0"/>
      <name>ada0</name>
      <rank>1</rank>
      <config>
      </config>
      <provider id="0xfffff80003a1c000">
        <geom ref="0xfffff80003a1b100"/>
        <mode>r2w2e4</mode>
        <name>ada0</name>
        <mediasize>1000204886016</mediasize>
        <sectorsize>512</sectorsize>
        <stripesize>4096</stripesize>
        <stripeoffset>0</stripeoffset>
        <config>
          <fwheads>16</fwheads>
          <fwsectors>63</fwsectors>
          <rotationrate>0</rotationrate>
          <ident>S3Z9NB0K123456</ident>
          <lunid>5002538e40a1b2c3</lunid>
          <descr>Samsung SSD 860 EVO 1TB</descr>
        </config>
      </provider>
    </geom>
  </class>
  <class id="0xffffffff81c1b3e0">
    <name>PART</name>
    <geom id="0xfffff80003d2e200">
      <class ref="0xffffffff81c1b3e0"/>
      <name>ada0</name>
      <rank>2</rank>
      <config>
        <scheme>GPT</scheme>
        <entries>128</entries>
        <first>40</first>
        <last>1953525127</last>
        <fwsectors>63</fwsectors>
        <fwheads>16</fwheads>
        <state>OK</state>
        <modified>false</modified>
      </config>
      <consumer id="0xfffff80003d2f300">
        <geom ref="0xfffff80003d2e200"/>
        <provider ref="0xfffff80003a1c000"/>
        <mode>r2w2e4</mode>
      </consumer>
      <provider id="0xfffff80003d30400">
        <geom ref="0xfffff80003d2e200"/>
        <mode>r0w0e0</mode>
        <name>ada0p1</name>
        <mediasize>209715200</mediasize>
        <sectorsize>512</sectorsize>
        <stripesize>4096</stripesize>
        <stripeoffset>0</stripeoffset>
        <config>
          <start>40</start>
          <end>409639</end>
          <index>1</index>
          <type>efi</type>
          <offset>20480</offset>
          <length>209715200</length>
          <label>efiboot0</label>
          <rawtype>c12a7328-f81f-11d2-ba4b-00a0c93ec93b</rawtype>
          <rawuuid>3f1d0c8e-5b2a-11ee-9c4f-0800275d1b77</rawuuid>
          <efimedia>HD(1,GPT,3f1d0c8e-5b2a-11ee-9c4f-0800275d1b77,0x28,0x64000)</efimedia>
        </config>
      </provider>
      <provider id="0xfffff80003d31500">
        <geom ref="0xfffff80003d2e200"/>
        <mode>r1w1e1</mode>
        <name>ada0p2</name>
        <mediasize>999995129856</mediasize>
        <sectorsize>512</sectorsize>
        <stripesize>4096</stripesize>
        <stripeoffset>0</stripeoffset>
        <config>
          <start>409640</start>
          <end>1953525127</end>
          <index>2</index>
          <type>freebsd-ufs</type>
          <offset>209735680</offset>
          <length>999995129856</length>
          <label>rootfs</label>
          <rawtype>516e7cb6-6ecf-11d6-8ff8-00022d09712b</rawtype>
          <rawuuid>3f1d0c8f-5b2a-11ee-9c4f-0800275d1b77</rawuuid>
          <attrib>bootme</attrib>
          <attrib>bootonce</attrib>
          <efimedia>HD(2,GPT,3f1d0c8f-5b2a-11ee-9c4f-0800275d1b77,0x64028,0x746a5e60)</efimedia>
        </config>
      </provider>
    </geom>
  </class>
  <class id="0xffffffff81c1c4f0">
    <name>DEV</name>
    <geom id="0xfffff80003e4a600">
      <class ref="0xffffffff81c1c4f0"/>
      <name>ada0p1</name>
      <rank>3</rank>
      <consumer id="0xfffff80003e4b700">
        <geom ref="0xfffff80003e4a600"/>
        <provider ref="0xfffff80003d30400"/>
        <mode>r0w0e0</mode>
      </consumer>
    </geom>
  </class>
  <class id="0xffffffff81c1d500">
    <name>LABEL</name>
    <geom id="0xfffff80003f5c800">
      <class ref="0xffffffff81c1d500"/>
      <name>ada0p2</name>
      <rank>3</rank>
      <consumer id="0xfffff80003f5d900">
        <geom ref="0xfffff80003f5c800"/>
        <provider ref="0xfffff80003d31500"/>
        <mode>r1w1e1</mode>
      </consumer>
      <provider id="0xfffff80003f5ea00">
        <geom ref="0xfffff80003f5c800"/>
        <mode>r1w1e1</mode>
        <name>gpt/rootfs</name>
        <mediasize>999995129856</mediasize>
        <sectorsize>512</sectorsize>
        <stripesize>4096</stripesize>
        <stripeoffset>0</stripeoffset>
        <config>
          <index>0</index>
          <length>999995129856</length>
          <seclength>1953115488</seclength>
          <offset>0</offset>
          <secoffset>0</secoffset>
        </config>
      </provider>
    </geom>
  </class>
</mesh>
"""

DISK_GEOM = "0xfffff80003a1b100"
DISK_PROVIDER = "0xfffff80003a1c000"
PART_GEOM = "0xfffff80003d2e200"
PART_CONSUMER = "0xfffff80003d2f300"
P1_PROVIDER = "0xfffff80003d30400"
P2_PROVIDER = "0xfffff80003d31500"
DEV_GEOM = "0xfffff80003e4a600"
DEV_CONSUMER = "0xfffff80003e4b700"
LABEL_GEOM = "0xfffff80003f5c800"
LABEL_CONSUMER = "0xfffff80003f5d900"
LABEL_PROVIDER = "0xfffff80003f5ea00"


def geom_xml(geom_id: str, name: str, body: str = "") -> str:
    return f'<geom id="{geom_id}"><name>{name}</name>{body}</geom>'


def provider_xml(provider_id: str, name: str, config: str = "") -> str:
    config_block = f"<config>{config}</config>" if config else ""
    return f'<provider id="{provider_id}"><name>{name}</name>{config_block}</provider>'


def consumer_xml(consumer_id: str, provider_ref: str | None = None, geom_ref: str | None = None) -> str:
    geom_part = f'<geom ref="{geom_ref}"/>' if geom_ref else ""
    provider_part = f'<provider ref="{provider_ref}"/>' if provider_ref else ""
    return f'<consumer id="{consumer_id}">{geom_part}{provider_part}<mode>r0w0e0</mode></consumer>'


def class_xml(class_id: str, name: str, *geoms: str) -> str:
    return f'<class id="{class_id}"><name>{name}</name>{"".join(geoms)}</class>'


def mesh_xml(*classes: str) -> str:
    return f"<mesh>{''.join(classes)}</mesh>"


@pytest.fixture()
def sample_confxml() -> str:
    return SAMPLE_CONFXML


@pytest.fixture()
def sample_graph() -> Graph:
    return build_graph(SAMPLE_CONFXML)
