from setuptools import setup


setup(
    name="sheet-reconciler",
    version="0.1.0",
    description="Check declared subtotals and totals in spreadsheet tables against the cells around them",
    packages=["sheet_reconciler"],
    python_requires=">=3.9",
    install_requires=[
        "pandas",
        "openpyxl",
    ],
    entry_points={
        "console_scripts": [
            "sheet-reconciler=sheet_reconciler.cli:main",
        ]
    },
)
