import os
import sys

from docopt import docopt

from benchctl.common import COMMON_OPTIONS, error, setup
from cli.exceptions import ConfigError
from cowbench.efficiency import compute_efficiency, load_snapshots, summarize
from cowbench.reports.efficiency import render_efficiency_html

doc = f"""
Generate the HTML storage efficiency report from the summary csv.

    Usage:
        generate_report [--summary <CSV>] [--env <TXT>] [--output <HTML>]
            [--config <YAML>] [--log-level <LOG>] [--log-dir <PATH>]
        generate_report (-h | --help)

    Options:
        -h --help           Shows the command usage
        --summary <CSV>     Measurement csv, <results_dir>/summary.csv when not given
        --env <TXT>         Environment summary, <results_dir>/environment-summary.txt when not given
        --output <HTML>     Report file, <results_dir>/storage-efficiency-report.html when not given
{COMMON_OPTIONS}"""


def run(args):
    log, config = setup("generate_report", args)
    summary_csv = args.get("--summary") or os.path.join(config.results_dir, "summary.csv")
    env_file = args.get("--env") or os.path.join(config.results_dir, "environment-summary.txt")
    output = args.get("--output") or os.path.join(config.results_dir, "storage-efficiency-report.html")

    if not os.path.exists(summary_csv):
        error(f"ERROR: {summary_csv} not found. Run measure_storage first.")
        return 1

    snapshots = load_snapshots(summary_csv)
    if not snapshots:
        error(f"ERROR: {summary_csv} has no measurements.")
        return 1

    env_text = None
    if os.path.exists(env_file):
        with open(env_file, "r") as _file:
            env_text = _file.read()
    else:
        log.warning(f"No environment summary at {env_file}")

    records = compute_efficiency(snapshots)
    html = render_efficiency_html(records, summarize(records), env_text)

    directory = os.path.dirname(output)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(output, "w") as _file:
        _file.write(html)

    log.info(f"Report of {len(records)} measurements written to {output}")
    print(f"Report generated: {output}")
    return 0


def main(argv=None):
    args = docopt(doc, argv=argv)
    try:
        return run(args)
    except ConfigError as e:
        error(f"ERROR: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
