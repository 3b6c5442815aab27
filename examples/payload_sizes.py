#!/usr/bin/env python3
"""
Example: How payload size changes the race

Runs the same number of instances once per payload size class (short string,
1KB, 10KB, 100KB) and prints the mean round trip of each transport.
"""

from racebench import Orchestrator, PayloadSize, RunConfiguration
from racebench.servers import wait_for_port


def run_payload_sizes(instance_count=10, base_port=8000, address='127.0.0.1'):
    """Race every payload size against one set of servers"""

    server_config = RunConfiguration(
        instance_count=instance_count,
        base_port=base_port,
        bind_address=address,
    )
    servers = Orchestrator(server_config)
    servers.serve()

    means = {}
    try:
        for _, ports in server_config.port_triples():
            for port in ports.as_tuple():
                wait_for_port(address, port)

        for size in PayloadSize:
            config = RunConfiguration(
                instance_count=instance_count,
                base_port=base_port,
                bind_address=address,
                payload_size=size,
            )
            report = Orchestrator(config).run()
            means[size.fixture_name] = {
                role: stats.mean for role, stats in report.statistics.items()
            }
    finally:
        servers.close()

    print("\nMEAN ROUND TRIP BY PAYLOAD SIZE (ms)")
    print("=" * 80)
    print(f"{'payload':>10} {'fast':>12} {'request_reply':>15} {'persistent':>12}")
    for name, row in means.items():
        print(f"{name:>10} {row['fast']:>12.3f} {row['request_reply']:>15.3f} {row['persistent']:>12.3f}")

    return means


if __name__ == '__main__':
    run_payload_sizes()
