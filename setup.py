from setuptools import setup, find_packages


setup(
    name="qrseal",
    version="0.1",
    packages=find_packages(),
    description="Hide a password-protectable ZIP archive behind a cover image, optionally stamped with a QR code of the password.",
    author="vercingetorx",
    install_requires=[
        "Pillow>=10.0.0",
        "qrcode>=7.4",
        "pyzipper>=0.3.6",
        "pycryptodomex>=3.23.0",
        "humanize>=4.0",
    ],
    entry_points={
        "console_scripts": [
            "qrseal=qrseal.cli:main",
        ]
    },
)
