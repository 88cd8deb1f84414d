#!/usr/bin/env python3
"""
Check the external services the monitor depends on.

Runs one location fix and one weather lookup with the configured
environment settings and, when storage.backend is "firestore", verifies
credentials and counts the existing history documents.

Usage:
    python tools/check_connectivity.py --config config/config.yaml
    python tools/check_connectivity.py --skip-weather
"""

import argparse
import logging
import os
import sys

# Add project directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))

from cloud.auth import get_credentials
from cloud.utils import check_cloud_config
from common.exceptions import ConfigurationError, EnvironmentLookupError, StoreError
from environment import create_location_provider
from environment.weather import OpenMeteoWeatherService
from main import load_config
from models.config import CloudConfig, EnvironmentConfig


def check_environment(env_cfg: EnvironmentConfig) -> bool:
    print(f"Requesting location fix (provider: {env_cfg.provider})")
    try:
        coords = create_location_provider(env_cfg).request_once()
    except (EnvironmentLookupError, ValueError) as e:
        print(f"❌ Location fix failed: {e}")
        return False
    print(f"✅ Location: {coords.latitude:.4f}, {coords.longitude:.4f}")

    weather = OpenMeteoWeatherService(
        base_url=env_cfg.weather_url,
        timeout_s=env_cfg.timeout_s,
        temperature_unit=env_cfg.temperature_unit,
    )
    try:
        reading = weather.lookup(coords)
    except EnvironmentLookupError as e:
        print(f"❌ Weather lookup failed: {e}")
        return False
    print(f"✅ Weather: {reading.condition}, {reading.temperature}")
    return True


def check_firestore(cloud: dict) -> bool:
    if not check_cloud_config(cloud):
        print("❌ Invalid cloud configuration")
        return False
    cloud_cfg = CloudConfig.from_dict(cloud)

    print(f"Testing authentication with credentials: {cloud_cfg.credentials_file}")
    if get_credentials(cloud_cfg.credentials_file) is None:
        print("❌ Failed to obtain credentials")
        return False
    print("✅ Credentials loaded")

    from cloud.firestore import create_firestore_store

    try:
        store = create_firestore_store(cloud_cfg)
        count = store.initial_count()
    except (ConfigurationError, StoreError) as e:
        print(f"❌ Firestore check failed: {e}")
        return False
    print(f"✅ {store.history_path} reachable, next record key follows index {count}")
    return True


def main():
    parser = argparse.ArgumentParser(description='Check weather and Firestore connectivity')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--skip-weather', action='store_true',
                        help='Only check the snapshot store')
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

    config = load_config(args.config)
    ok = True

    if not args.skip_weather:
        ok = check_environment(EnvironmentConfig.from_dict(config.get('environment') or {})) and ok

    storage = config.get('storage') or {}
    if storage.get('backend', 'sqlite') == 'firestore':
        ok = check_firestore(config.get('cloud')) and ok
    else:
        print(f"Storage backend is sqlite ({storage.get('local_database_path')}), nothing to check remotely")

    print("\nConnectivity check completed" if ok else "\nConnectivity check found problems")
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
