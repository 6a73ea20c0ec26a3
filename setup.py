"""Setup script for the TabRotator kiosk tab rotation service."""

import os
from pathlib import Path

from setuptools import find_packages, setup
from setuptools.command.develop import develop
from setuptools.command.install import install


def post_install_setup():
    """Post-installation setup to create configuration directories and show usage guidance."""
    try:
        config_dir = Path.home() / ".config" / "tabrotator"
        data_dir = Path.home() / ".local" / "share" / "tabrotator"

        for directory in [config_dir, data_dir]:
            directory.mkdir(parents=True, exist_ok=True)
            if hasattr(os, "chmod"):
                os.chmod(directory, 0o755)

        config_file = config_dir / "config.yaml"
        if not config_file.exists():
            print("\n" + "=" * 60)
            print("TabRotator Installation Complete!")
            print("=" * 60)
            print(f"Configuration directory: {config_dir}")
            print(f"Data directory: {data_dir}")
            print("\nNext Steps:")
            print("1. Start Chromium with --remote-debugging-port=9222")
            print("2. Copy config/config.yaml.example to the config directory and list your pages")
            print("3. Run 'tabrotator --help' to see all available options")
            print("=" * 60)

    except Exception as e:
        print(f"Warning: Post-install setup failed: {e}")
        print("You may need to create configuration directories manually.")


class PostInstallCommand(install):
    """Custom install command with post-install setup."""

    def run(self):
        install.run(self)
        post_install_setup()


class PostDevelopCommand(develop):
    """Custom develop command with post-install setup."""

    def run(self):
        develop.run(self)
        post_install_setup()


# Read the README file
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

# Read requirements, separating test dependencies
requirements_file = Path(__file__).parent / "requirements.txt"
requirements = []
dev_requirements = []

if requirements_file.exists():
    for line in requirements_file.read_text().strip().split("\n"):
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "pytest" in line:
            dev_requirements.append(line)
        else:
            requirements.append(line)

setup(
    name="tabrotator",
    version="1.0.0",
    description="Kiosk browser tab rotation driven over the Chrome DevTools Protocol",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="TabRotator Team",
    # Package configuration
    packages=find_packages(exclude=["tests*", "docs*"]),
    include_package_data=True,
    # Dependencies
    install_requires=requirements,
    extras_require={
        "dev": dev_requirements,
        "test": dev_requirements,
    },
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Environment :: Web Environment",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
        "Operating System :: MacOS",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Internet :: WWW/HTTP :: Browsers",
        "Framework :: AsyncIO",
    ],
    keywords="kiosk browser tabs rotation chrome devtools digital-signage raspberry-pi async",
    entry_points={
        "console_scripts": [
            "tabrotator=tabrotator.__main__:main",
        ],
    },
    # Additional data files
    data_files=[
        ("share/tabrotator/config", ["config/config.yaml.example"]),
    ],
    # Custom install commands
    cmdclass={
        "install": PostInstallCommand,
        "develop": PostDevelopCommand,
    },
    # Build configuration
    zip_safe=False,
    platforms=["linux", "macos"],
)
