# fortiscrape

A library that reads statistics from FortiGate firewalls over the FortiOS
REST API and turns them into Prometheus metric samples, which it can
render in the Prometheus text exposition format.

## What it covers

Each probe takes a client and a `TargetMetadata` and returns a list of
`Metric` samples.

- `fortiscrape.probes_bgp`
  - `probe_bgp_neighbors_ipv4`, `probe_bgp_neighbors_ipv6`: one info
    sample per neighbour, with its state as the value (see
    `bgp_state_to_number`: Idle 1 … Established 6, anything else 0)
  - `probe_bgp_neighbor_paths_ipv4`, `probe_bgp_neighbor_paths_ipv6`:
    number of paths and best paths per neighbour and VDOM
- `fortiscrape.probes_ippool.probe_firewall_ippool`: available ratio,
  IPs in use and total, clients, items used and total, port block
  allocations per IP
- `fortiscrape.probes_load_balance.probe_firewall_load_balance`: virtual
  and real servers, real server mode, status, active sessions, round-trip
  time (`parse_rtt`) and processed bytes
- `fortiscrape.probes_policy.probe_firewall_policies`: hit counts, bytes,
  packets and active sessions of IPv4 and IPv6 policies; the firmware
  version in the response decides whether the separate IPv6 policy
  endpoints (before 6.4) or the combined ones are read
- `fortiscrape.probes_license.probe_license_status`: VDOM licences used
  and available
- `fortiscrape.probes_log`: `probe_log_current_disk_usage`,
  `probe_log_analyzer`, `probe_log_analyzer_queue`

Probes that need a newer FortiOS than `TargetMetadata` says return an
empty list: the BGP probes need major version 7 or later, the load
balancer probe 6.4 or later. A probe that cannot collect its metrics (a
failed request, a response of the wrong shape, an unparsable version)
raises `ProbeError` from `fortiscrape.metrics`.

The BGP path probes take `max_paths` (default 10000). Zero turns them
off; a VDOM reporting more paths than the maximum raises `ProbeError`
rather than publishing a partial count.

## Authentication file

Targets and their API tokens live in a YAML file. Each key is the target
URL exactly as it will be used; tokens are accepted only for `https`
targets.

```yaml
"https://fortigate.example.com":
  token: token
  probes:
    include: []
    exclude: []
```

`fortiscrape.config.parse_auth_keys` reads this text into a mapping of
target to `TargetAuth` (a `token` and `Probes` with `include` and
`exclude`). `load_config(argv)` parses command-line style options and
returns an `ExporterConfig`:

| option | default |
| --- | --- |
| `--auth-file` | `fortigate-key.yaml` |
| `--listen` | `:9710` |
| `--scrape-timeout` | `30` |
| `--https-timeout` | `10` |
| `--insecure` | off |
| `--extra-ca-certs` (comma-separated files) | none |
| `--max-bgp-paths` | `10000` |
| `--max-vpn-users` | `0` |

Single-dash spellings (`-auth-file`) are accepted too. A file that
cannot be read or parsed raises `ConfigError`.

## Using it from Python

```python
from fortiscrape.client import UrllibTransport, build_ssl_context, new_forti_client
from fortiscrape.config import load_config
from fortiscrape.metrics import render
from fortiscrape.probes_bgp import probe_bgp_neighbor_paths_ipv4
from fortiscrape.probes_ippool import probe_firewall_ippool
from fortiscrape.version import TargetMetadata

config = load_config(["--auth-file", "fortigate-key.yaml"])
transport = UrllibTransport(build_ssl_context(config), timeout=config.scrape_timeout)
client = new_forti_client("https://fortigate.example.com", transport, config)

meta = TargetMetadata(version_major=7, version_minor=2)
samples = probe_firewall_ippool(client, meta)
samples += probe_bgp_neighbor_paths_ipv4(client, meta, config.max_bgp_paths)
print(render(samples))
```

`new_forti_client` raises `FortiHTTPError` when the target has no entry
in the authentication map, has no token, or is not `https`. It returns a
`TokenClient`, whose `get(path, query)` sends the token as a bearer
credential and returns the decoded JSON; a reply other than HTTP 200,
a network error, or a body that is not JSON raises `FortiHTTPError`.
`UrllibTransport` sends requests with `urllib`; any object with a
`send(request)` method returning `(status, body)` can take its place.

`build_ssl_context` returns a TLS context that trusts the system store
plus the configured extra CA certificates, and skips verification when
`tls_insecure` is set.

`fortiscrape.version.parse_version` turns a FortiOS version string such
as `v6.4.4` into `(6, 4)` and raises `ValueError` otherwise.

## Metrics helpers

`Metric` holds one sample: name, help text, `MetricType` (`GAUGE` or
`COUNTER`), value and labels. `render` groups samples by name, sorts
families by name and samples by label values, and writes the text
exposition format; samples of one name that disagree on help or type
raise `ValueError`. `build_info_metric(version, revision,
runtime_version)` returns the `fortigate_exporter_build_info` sample
with labels `version` (leading `v` removed), `revision` and
`pythonversion`.

`fortiscrape.files` has `caller_dir` and `read_relative_file`, which
read a file relative to the module that calls them.

## What it does not do

- There is no command and no HTTP server: nothing listens on the
  `--listen` address or answers scrape requests; the `listen` and
  `scrape_timeout` settings are only carried in `ExporterConfig`.
- Probes are called one by one by the caller; nothing applies the
  `include` and `exclude` lists of the authentication file.
- The firmware version for `TargetMetadata` is not discovered; the
  caller supplies it.
- There is no VPN user probe; `max_vpn_users` is only parsed.