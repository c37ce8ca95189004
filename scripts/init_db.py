"""Creates the data directory and an empty coin catalog."""
import os
import sys

import pandas as pd

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from cryptoadmin.config import settings  # noqa: E402


os.makedirs(settings.DATA_DIR, exist_ok=True)

coins_path = os.path.join(settings.DATA_DIR, settings.COINS_FILE)
if not os.path.exists(coins_path):
    df = pd.DataFrame(columns=['id', 'name', 'symbol'])
    df.to_csv(coins_path, index=False)
    print(f'Created {coins_path}')
else:
    print(f'{coins_path} already exists')
