"""LimeSurvey configuration files used across the test suite."""

import os


LIMESURVEY_CONFIG = r"""<?php if (!defined('BASEPATH')) exit('No direct script access allowed');
/*
| -------------------------------------------------------------------
| DATABASE CONNECTIVITY SETTINGS
| -------------------------------------------------------------------
| This file will contain the settings needed to access your database.
*/
return array(
    'components' => array(
        'db' => array(
            'connectionString' => 'mysql:host=localhost;port=3306;dbname=limesurvey;',
            'emulatePrepare' => true,
            'username' => 'root',
            'password' => 'secret',
            'charset' => 'utf8mb4',
            'tablePrefix' => 'lime_',
        ),
        // Uncomment the following lines if you need table-based sessions.
        'urlManager' => array(
            'urlFormat' => 'path',
            'rules' => array(),
            'showScriptName' => true,
        ),
    ),
    'runtimePath' => dirname(__FILE__).DIRECTORY_SEPARATOR.'runtime',
    'config' => array(
        'debug' => 0,
        'debugsql' => 0, # Set this to 1 to enable sql logging
        'updatable' => true,
    ),
);
/* End of file config.php */
/* Location: ./application/config/config.php */
"""


def php_quote(value: str) -> str:
    """Single-quoted PHP string literal for value"""
    return "'" + value.replace('\\', '\\\\').replace("'", "\\'") + "'"


def write_config(root, source: str = LIMESURVEY_CONFIG):
    """Write application/config/config.php under root and return its path"""
    config_dir = os.path.join(str(root), 'application', 'config')
    os.makedirs(config_dir, exist_ok=True)
    path = os.path.join(config_dir, 'config.php')
    with open(path, 'w', encoding='utf-8') as f:
        f.write(source)
    return path


def make_db_config(dsn, username, password, table_prefix) -> str:
    """Minimal config.php with only a components.db section"""
    return (
        "<?php\nreturn array(\n"
        "    'components' => array(\n"
        "        'db' => array(\n"
        f"            'connectionString' => {php_quote(dsn)},\n"
        f"            'username' => {php_quote(username)},\n"
        f"            'password' => {php_quote(password)},\n"
        f"            'tablePrefix' => {php_quote(table_prefix)},\n"
        "        ),\n"
        "    ),\n"
        ");\n"
    )
