from setuptools import setup, find_packages

setup(
    name="gpoaudit",
    version="0.1.0",
    description="Audit Group Policy Object links and report unused GPOs",
    author="",
    author_email="",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "PySide6>=6.6.0",
        "colorama>=0.4.6",
        "pywin32>=306; sys_platform == 'win32'",
    ],
    python_requires=">=3.9",
    entry_points={
        "console_scripts": [
            "gpoaudit=gpoaudit.main:main",
        ],
    },
)
