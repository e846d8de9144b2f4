import os
import yaml
import logging
from pathlib import Path
from typing import Any, Optional
from pydantic import BaseModel, Field
from bizbooks.modules.config_models import BusinessRulesConfig

class AppConfig(BaseModel):
    root_dir: Path

    # Fields derived from root_dir, calculated during initialization
    config_dir: Path = Field(default=None)
    logs_dir: Path = Field(default=None)
    business_rules_path: Path = Field(default=None)

    _business_rules: Optional[BusinessRulesConfig] = None

    class Config:
        arbitrary_types_allowed = True

    def model_post_init(self, __context: Any) -> None:
        """Initialize dependent paths after root_dir is set."""
        if not self.config_dir: self.config_dir = self.root_dir / "config"
        if not self.logs_dir: self.logs_dir = self.root_dir / "logs"
        if not self.business_rules_path: self.business_rules_path = self.config_dir / "business_rules.yaml"

    @property
    def business_rules(self) -> BusinessRulesConfig:
        if self._business_rules is None:
            if self.business_rules_path.exists():
                with open(self.business_rules_path, 'r') as f:
                    raw = yaml.safe_load(f) or {}
                self._business_rules = BusinessRulesConfig(**raw)
            else:
                self._business_rules = BusinessRulesConfig()
        return self._business_rules

    @classmethod
    def load_default(cls) -> 'AppConfig':
        pkg_dir = Path(__file__).parent
        root_dir = pkg_dir.parent
        return cls(root_dir=root_dir)

def setup_logging(config: AppConfig, level=logging.INFO):
    os.makedirs(config.logs_dir, exist_ok=True)
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(config.logs_dir / 'bizbooks.log'),
            logging.StreamHandler()
        ]
    )
