"""madOS Networking - Internationalization translations.

Provides translations for English and Spanish.  Strings containing
``{ssid}`` or ``{count}`` are format templates.
"""

import locale
import os

TRANSLATIONS = {
    'English': {
        'title': 'madOS Networking',
        'advanced': 'Advanced',
        'back': 'Back',
        'scanning': 'Scanning for networks...',
        'connecting_badge': 'CONNECTING...',
        'edit': 'EDIT',
        'connect': 'Connect',
        'forget': 'Forget',
        'cancel': 'Cancel',
        'ok': 'OK',
        'disconnected': 'Disconnected',
        'connecting': 'Connecting',
        'connected': 'Connected',
        'signal_strength': 'Signal Strength',
        'security': 'Security',
        'signal_none': 'None',
        'signal_weak': 'Weak',
        'signal_ok': 'OK',
        'signal_excellent': 'Excellent',
        'security_open': 'Open',
        'security_wpa': 'WPA2',
        'security_unsupported': 'Unsupported',
        'enter_password': 'Enter password',
        'wrong_password': 'Wrong password',
        'for_network': 'for "{ssid}"',
        'confirm_forget': 'Forget Wi-Fi Network "{ssid}"?',
        'show_password': 'Show password',
        'min_length': 'At least {count} characters',
        'enable_tethering': 'Enable Tethering',
        'tethering_password': 'Tethering Password',
        'enter_tethering_password': 'Enter new tethering password',
        'ip_address': 'IP Address',
        'enable_roaming': 'Enable Roaming',
        'apn_setting': 'APN Setting',
        'enter_apn': 'Enter APN',
        'apn_hint': 'leave blank for automatic configuration',
        'enable_ssh': 'Enable SSH',
        'ssh_keys': 'SSH Keys',
        'ssh_keys_none': 'None',
        'add': 'ADD',
        'remove': 'REMOVE',
        'enter_github_username': 'Enter GitHub username',
        'github_hint': 'public keys are fetched from github.com',
        'ssh_user_not_found': 'GitHub user not found',
        'ssh_no_keys': 'This GitHub user has no public keys',
        'ssh_fetch_failed': 'Could not download keys from GitHub',
        'ssh_write_failed': 'Could not update authorized_keys',
    },

    'Español': {
        'title': 'Redes madOS',
        'advanced': 'Avanzado',
        'back': 'Atrás',
        'scanning': 'Buscando redes...',
        'connecting_badge': 'CONECTANDO...',
        'edit': 'EDITAR',
        'connect': 'Conectar',
        'forget': 'Olvidar',
        'cancel': 'Cancelar',
        'ok': 'Aceptar',
        'disconnected': 'Desconectado',
        'connecting': 'Conectando',
        'connected': 'Conectado',
        'signal_strength': 'Intensidad de señal',
        'security': 'Seguridad',
        'signal_none': 'Ninguna',
        'signal_weak': 'Débil',
        'signal_ok': 'Aceptable',
        'signal_excellent': 'Excelente',
        'security_open': 'Abierta',
        'security_wpa': 'WPA2',
        'security_unsupported': 'No soportada',
        'enter_password': 'Introduce la contraseña',
        'wrong_password': 'Contraseña incorrecta',
        'for_network': 'para "{ssid}"',
        'confirm_forget': '¿Olvidar la red Wi-Fi "{ssid}"?',
        'show_password': 'Mostrar contraseña',
        'min_length': 'Al menos {count} caracteres',
        'enable_tethering': 'Activar punto de acceso',
        'tethering_password': 'Contraseña del punto de acceso',
        'enter_tethering_password': 'Nueva contraseña del punto de acceso',
        'ip_address': 'Dirección IP',
        'enable_roaming': 'Activar itinerancia',
        'apn_setting': 'Configuración de APN',
        'enter_apn': 'Introduce el APN',
        'apn_hint': 'déjalo en blanco para configuración automática',
        'enable_ssh': 'Activar SSH',
        'ssh_keys': 'Claves SSH',
        'ssh_keys_none': 'Ninguna',
        'add': 'AÑADIR',
        'remove': 'QUITAR',
        'enter_github_username': 'Introduce el usuario de GitHub',
        'github_hint': 'las claves públicas se descargan de github.com',
        'ssh_user_not_found': 'Usuario de GitHub no encontrado',
        'ssh_no_keys': 'Este usuario de GitHub no tiene claves públicas',
        'ssh_fetch_failed': 'No se pudieron descargar las claves de GitHub',
        'ssh_write_failed': 'No se pudo actualizar authorized_keys',
    },
}


def detect_system_language():
    """Detect the system language from environment variables.

    Returns:
        The language name matching available translations, or 'English'.
    """
    lang_code = None
    for var in ['LC_ALL', 'LC_MESSAGES', 'LANG', 'LANGUAGE']:
        lang_code = os.environ.get(var)
        if lang_code:
            break

    if not lang_code:
        try:
            lang_tuple = locale.getlocale(locale.LC_MESSAGES)
            if lang_tuple and lang_tuple[0]:
                lang_code = lang_tuple[0]
        except (ValueError, AttributeError):
            pass

    if not lang_code:
        return 'English'

    lang_prefix = lang_code.split('_')[0].split('.')[0].lower()
    lang_map = {
        'en': 'English',
        'es': 'Español',
    }
    return lang_map.get(lang_prefix, 'English')


def get_text(key, language='English', **kwargs):
    """Retrieve a translated string for the given key and language.

    Args:
        key: The translation key to look up.
        language: The language name (default: 'English').
        **kwargs: Values substituted into the template, if any.

    Returns:
        The translated string, or the English fallback, or the key itself.
    """
    lang_dict = TRANSLATIONS.get(language, TRANSLATIONS['English'])
    text = lang_dict.get(key, TRANSLATIONS['English'].get(key, key))
    if kwargs:
        text = text.format(**kwargs)
    return text
