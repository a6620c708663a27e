import copy
import math
import re

import pytest

from fortiscrape.client import FortiHTTPError
from fortiscrape.metrics import MetricType, ProbeError, render
from fortiscrape.probes_load_balance import parse_rtt, probe_firewall_load_balance
from fortiscrape.version import TargetMetadata

PATH = "api/v2/monitor/firewall/load-balance"
QUERY = "vdom=*&start=0&count=1000"


class FakeClient:
    def __init__(self, responses):
        self.responses = dict(responses)
        self.calls = []

    def get(self, path, query=""):
        self.calls.append((path, query))
        try:
            return copy.deepcopy(self.responses[(path, query)])
        except KeyError:
            raise FortiHTTPError(
                f'Response code was 404, expected 200 (path: "{path}")'
            ) from None


LOAD_BALANCERS = [
    {
        "http_method": "GET",
        "vdom": "root",
        "path": "firewall",
        "name": "load-balance",
        "status": "success",
        "serial": "FGT00000000000000",
        "version": "v6.4.2",
        "build": 1723,
        "results": [
            {
                "virtual_server_name": "LB-EXAMPLE",
                "virtual_server_ip": "169.254.1.1",
                "virtual_server_port": 80,
                "virtual_server_type": "http",
                "list": [
                    {
                        "real_server_id": 1,
                        "real_server_ip": "10.10.0.1",
                        "real_server_port": 8080,
                        "mode": "active",
                        "status": "up",
                        "active_sessions": 999,
                        "RTT": "<1",
                        "bytes_processed": 38260,
                    },
                    {
                        "real_server_id": 2,
                        "real_server_ip": "10.10.0.2",
                        "real_server_port": 8080,
                        "mode": "standby",
                        "status": "down",
                        "active_sessions": 3,
                        "RTT": "357",
                        "bytes_processed": 0,
                    },
                    {
                        "real_server_id": 3,
                        "real_server_ip": "10.10.0.3",
                        "real_server_port": 8080,
                        "mode": "disabled",
                        "status": "unknown",
                        "active_sessions": 0,
                        "RTT": "",
                        "bytes_processed": 0,
                    },
                    {
                        "real_server_id": 4,
                        "real_server_ip": "10.10.0.4",
                        "real_server_port": 8080,
                        "mode": "disabled",
                        "status": "",
                        "active_sessions": 0,
                        "RTT": "n/a",
                        "bytes_processed": 0,
                    },
                ],
            }
        ],
    }
]

EXPECTED = """
# HELP fortigate_lb_real_server_active_sessions Number of sessions active on this real server
# TYPE fortigate_lb_real_server_active_sessions gauge
fortigate_lb_real_server_active_sessions{id="1",vdom="root",virtual_server="LB-EXAMPLE"} 999
fortigate_lb_real_server_active_sessions{id="2",vdom="root",virtual_server="LB-EXAMPLE"} 3
fortigate_lb_real_server_active_sessions{id="3",vdom="root",virtual_server="LB-EXAMPLE"} 0
fortigate_lb_real_server_active_sessions{id="4",vdom="root",virtual_server="LB-EXAMPLE"} 0
# TYPE fortigate_lb_real_server_info gauge
fortigate_lb_real_server_info{id="1",ip="10.10.0.1",port="8080",vdom="root",virtual_server="LB-EXAMPLE"} 1
fortigate_lb_real_server_info{id="2",ip="10.10.0.2",port="8080",vdom="root",virtual_server="LB-EXAMPLE"} 1
fortigate_lb_real_server_info{id="3",ip="10.10.0.3",port="8080",vdom="root",virtual_server="LB-EXAMPLE"} 1
fortigate_lb_real_server_info{id="4",ip="10.10.0.4",port="8080",vdom="root",virtual_server="LB-EXAMPLE"} 1
# TYPE fortigate_lb_real_server_mode gauge
fortigate_lb_real_server_mode{id="1",mode="active",vdom="root",virtual_server="LB-EXAMPLE"} 1
fortigate_lb_real_server_mode{id="1",mode="disabled",vdom="root",virtual_server="LB-EXAMPLE"} 0
fortigate_lb_real_server_mode{id="1",mode="standby",vdom="root",virtual_server="LB-EXAMPLE"} 0
fortigate_lb_real_server_mode{id="2",mode="active",vdom="root",virtual_server="LB-EXAMPLE"} 0
fortigate_lb_real_server_mode{id="2",mode="disabled",vdom="root",virtual_server="LB-EXAMPLE"} 0
fortigate_lb_real_server_mode{id="2",mode="standby",vdom="root",virtual_server="LB-EXAMPLE"} 1
fortigate_lb_real_server_mode{id="3",mode="active",vdom="root",virtual_server="LB-EXAMPLE"} 0
fortigate_lb_real_server_mode{id="3",mode="disabled",vdom="root",virtual_server="LB-EXAMPLE"} 1
fortigate_lb_real_server_mode{id="3",mode="standby",vdom="root",virtual_server="LB-EXAMPLE"} 0
fortigate_lb_real_server_mode{id="4",mode="active",vdom="root",virtual_server="LB-EXAMPLE"} 0
fortigate_lb_real_server_mode{id="4",mode="disabled",vdom="root",virtual_server="LB-EXAMPLE"} 1
fortigate_lb_real_server_mode{id="4",mode="standby",vdom="root",virtual_server="LB-EXAMPLE"} 0
# TYPE fortigate_lb_real_server_processed_bytes_total counter
fortigate_lb_real_server_processed_bytes_total{id="1",vdom="root",virtual_server="LB-EXAMPLE"} 38260
fortigate_lb_real_server_processed_bytes_total{id="2",vdom="root",virtual_server="LB-EXAMPLE"} 0
fortigate_lb_real_server_processed_bytes_total{id="3",vdom="root",virtual_server="LB-EXAMPLE"} 0
fortigate_lb_real_server_processed_bytes_total{id="4",vdom="root",virtual_server="LB-EXAMPLE"} 0
# TYPE fortigate_lb_real_server_rtt_seconds gauge
fortigate_lb_real_server_rtt_seconds{id="1",vdom="root",virtual_server="LB-EXAMPLE"} 0.001
fortigate_lb_real_server_rtt_seconds{id="2",vdom="root",virtual_server="LB-EXAMPLE"} 0.357
fortigate_lb_real_server_rtt_seconds{id="3",vdom="root",virtual_server="LB-EXAMPLE"} NaN
fortigate_lb_real_server_rtt_seconds{id="4",vdom="root",virtual_server="LB-EXAMPLE"} NaN
# TYPE fortigate_lb_real_server_status gauge
fortigate_lb_real_server_status{id="1",state="down",vdom="root",virtual_server="LB-EXAMPLE"} 0
fortigate_lb_real_server_status{id="1",state="unknown",vdom="root",virtual_server="LB-EXAMPLE"} 0
fortigate_lb_real_server_status{id="1",state="up",vdom="root",virtual_server="LB-EXAMPLE"} 1
fortigate_lb_real_server_status{id="2",state="down",vdom="root",virtual_server="LB-EXAMPLE"} 1
fortigate_lb_real_server_status{id="2",state="unknown",vdom="root",virtual_server="LB-EXAMPLE"} 0
fortigate_lb_real_server_status{id="2",state="up",vdom="root",virtual_server="LB-EXAMPLE"} 0
fortigate_lb_real_server_status{id="3",state="down",vdom="root",virtual_server="LB-EXAMPLE"} 0
fortigate_lb_real_server_status{id="3",state="unknown",vdom="root",virtual_server="LB-EXAMPLE"} 1
fortigate_lb_real_server_status{id="3",state="up",vdom="root",virtual_server="LB-EXAMPLE"} 0
fortigate_lb_real_server_status{id="4",state="down",vdom="root",virtual_server="LB-EXAMPLE"} 0
fortigate_lb_real_server_status{id="4",state="unknown",vdom="root",virtual_server="LB-EXAMPLE"} 1
fortigate_lb_real_server_status{id="4",state="up",vdom="root",virtual_server="LB-EXAMPLE"} 0
# TYPE fortigate_lb_virtual_server_info gauge
fortigate_lb_virtual_server_info{ip="169.254.1.1",name="LB-EXAMPLE",port="80",type="http",vdom="root"} 1
"""

_SAMPLE_RE = re.compile(r"^(\w+)(?:\{(.*)\})?\s+(\S+)$")
_LABEL_RE = re.compile(r'(\w+)="([^"]*)"')


def _value_key(value):
    return "NaN" if math.isnan(value) else value


def parse_expected(text):
    samples = {}
    types = {}
    for line in text.strip().splitlines():
        line = line.strip()
        if line.startswith("# TYPE "):
            _, _, name, kind = line.split(" ")
            types[name] = kind
            continue
        if line.startswith("#"):
            continue
        match = _SAMPLE_RE.match(line)
        name, labels, value = match.groups()
        key = (name, tuple(sorted(_LABEL_RE.findall(labels or ""))))
        samples[key] = _value_key(float(value))
    return samples, types


def collect(metrics):
    samples = {}
    types = {}
    for metric in metrics:
        key = (metric.name, tuple(sorted(metric.labels.items())))
        assert key not in samples
        samples[key] = _value_key(metric.value)
        types[metric.name] = metric.type.value
    return samples, types


def test_firewall_load_balance():
    client = FakeClient({(PATH, QUERY): LOAD_BALANCERS})
    metrics = probe_firewall_load_balance(client, TargetMetadata(7, 0))
    assert collect(metrics) == parse_expected(EXPECTED)
    assert client.calls == [(PATH, QUERY)]


def test_firewall_load_balance_renders_counter_type():
    client = FakeClient({(PATH, QUERY): LOAD_BALANCERS})
    text = render(probe_firewall_load_balance(client, TargetMetadata(6, 4)))
    assert "# TYPE fortigate_lb_real_server_processed_bytes_total counter\n" in text
    assert (
        'fortigate_lb_real_server_rtt_seconds{id="3",vdom="root",'
        'virtual_server="LB-EXAMPLE"} NaN\n'
    ) in text


def test_load_balance_servers_6_0_5_is_skipped():
    client = FakeClient({(PATH, QUERY): LOAD_BALANCERS})
    assert probe_firewall_load_balance(client, TargetMetadata(6, 0)) == []
    assert client.calls == []


@pytest.mark.parametrize("major,minor", [(5, 6), (6, 2), (6, 3)])
def test_versions_before_6_4_produce_nothing(major, minor):
    client = FakeClient({})
    assert probe_firewall_load_balance(client, TargetMetadata(major, minor)) == []


def test_transport_error_becomes_probe_error():
    with pytest.raises(ProbeError, match="404"):
        probe_firewall_load_balance(FakeClient({}), TargetMetadata(7, 0))


def test_bad_shape_raises_probe_error():
    client = FakeClient({(PATH, QUERY): {"results": []}})
    with pytest.raises(ProbeError):
        probe_firewall_load_balance(client, TargetMetadata(7, 0))


def test_null_response_gives_no_metrics():
    client = FakeClient({(PATH, QUERY): None})
    assert probe_firewall_load_balance(client, TargetMetadata(7, 0)) == []


def test_virtual_server_without_real_servers():
    data = [{"vdom": "root", "results": [{"virtual_server_name": "VS", "list": None}]}]
    metrics = probe_firewall_load_balance(FakeClient({(PATH, QUERY): data}), TargetMetadata(7, 0))
    assert len(metrics) == 1
    assert metrics[0].name == "fortigate_lb_virtual_server_info"
    assert metrics[0].type is MetricType.GAUGE
    assert dict(metrics[0].labels) == {
        "vdom": "root", "name": "VS", "ip": "", "port": "0", "type": "",
    }


@pytest.mark.parametrize(
    "rtt,expected",
    [("<1", 0.001), ("357", 0.357), ("2.5", 0.0025), ("0", 0.0)],
)
def test_parse_rtt_values(rtt, expected):
    assert parse_rtt(rtt) == pytest.approx(expected)


@pytest.mark.parametrize("rtt", ["", "n/a", " 5", "1_0"])
def test_parse_rtt_unparsable_is_nan(rtt):
    result = parse_rtt(rtt)
    assert repr(float(result)) == "nan"