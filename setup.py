# -*- coding: utf-8 -*-
from setuptools import find_packages, setup

setup(
    name="odf-cow-bench",
    version="0.1",
    description="Placement trace and storage efficiency analysis of cloned VM disks on ODF.",
    author="Storage QE Team",
    install_requires=[
        "docopt==0.6.2",
        "jinja2==3.1.6",
        "paramiko==3.5.1",
        "plotly==6.1.2",
        "pyyaml==6.0.2",
    ],
    extras_require={
        "test": [
            "mock==5.2.0",
            "pytest==8.4.1",
        ],
    },
    entry_points={
        "console_scripts": [
            "show_vm_placement=benchctl.show_vm_placement:main",
            "show_node_distribution=benchctl.show_node_distribution:main",
            "measure_storage=benchctl.measure_storage:main",
            "generate_report=benchctl.generate_report:main",
        ],
    },
    zip_safe=False,
    include_package_data=True,
    package_data={"cowbench.reports": ["templates/*.html"]},
    packages=find_packages(exclude=["unittests", "unittests.*"]),
)
