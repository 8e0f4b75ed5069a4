"""
Shell completion scripts.
"""

from typing import Dict


def get_bash_completion() -> str:
    """Bash completion script."""
    return """
# Bash completion for dep-sweeper
_dep_sweeper_completion() {
    local cur prev opts
    COMPREPLY=()
    cur="${COMP_WORDS[COMP_CWORD]}"
    prev="${COMP_WORDS[COMP_CWORD-1]}"

    if [[ ${COMP_CWORD} == 1 ]]; then
        opts="analyze info config completion --version --help"
        COMPREPLY=( $(compgen -W "${opts}" -- ${cur}) )
        return 0
    fi

    if [[ "${COMP_WORDS[1]}" == "config" && ${COMP_CWORD} == 2 ]]; then
        opts="init show validate"
        COMPREPLY=( $(compgen -W "${opts}" -- ${cur}) )
        return 0
    fi

    if [[ "${COMP_WORDS[1]}" == "analyze" ]]; then
        case "${prev}" in
            --manifest-path|--output-file|-o)
                COMPREPLY=( $(compgen -f -- ${cur}) )
                return 0
                ;;
            --source-dir)
                COMPREPLY=( $(compgen -d -- ${cur}) )
                return 0
                ;;
            --output-format)
                COMPREPLY=( $(compgen -W "text json" -- ${cur}) )
                return 0
                ;;
            --metadata-source)
                COMPREPLY=( $(compgen -W "toml cargo" -- ${cur}) )
                return 0
                ;;
            *)
                opts="--manifest-path --source-dir --extension --metadata-source --output-format --output-file --ignore --fail-on-unused --quiet --verbose"
                COMPREPLY=( $(compgen -W "${opts}" -- ${cur}) $(compgen -d -- ${cur}) )
                return 0
                ;;
        esac
    fi
}

complete -F _dep_sweeper_completion dep-sweeper
"""


def get_zsh_completion() -> str:
    """Zsh completion script."""
    return """
#compdef dep-sweeper

_dep_sweeper() {
    local context state state_descr line
    typeset -A opt_args

    _arguments -C \\
        '1: :_dep_sweeper_commands' \\
        '*:: :->args'

    case $state in
        args)
            case $words[1] in
                analyze)
                    _arguments \\
                        '--manifest-path[Path to Cargo.toml]:manifest:_files' \\
                        '--source-dir[Directory holding the sources]:directory:_directories' \\
                        '--extension[Source file extension]:extension:(.rs)' \\
                        '--metadata-source[Where dependency metadata comes from]:source:(toml cargo)' \\
                        '--output-format[Output format]:format:(text json)' \\
                        '--output-file[Save results to file]:file:_files' \\
                        '*--ignore[Never report this dependency]:name:' \\
                        '--fail-on-unused[Exit with error code if anything is flagged]' \\
                        '--quiet[Suppress status output]' \\
                        '--verbose[Enable verbose output]' \\
                        '1:project directory:_directories'
                    ;;
                config)
                    _arguments '1: :(init show validate)'
                    ;;
                completion)
                    _arguments '1: :(bash zsh fish)'
                    ;;
            esac
            ;;
    esac
}

_dep_sweeper_commands() {
    local commands
    commands=(
        'analyze:Report dependencies that appear unused'
        'info:Show detection methods and configuration sources'
        'config:Configuration management commands'
        'completion:Generate shell completion scripts'
    )
    _describe 'command' commands
}

_dep_sweeper "$@"
"""


def get_fish_completion() -> str:
    """Fish completion script."""
    return """
# Fish completion for dep-sweeper

complete -c dep-sweeper -n '__fish_use_subcommand' -a 'analyze' -d 'Report unused dependencies'
complete -c dep-sweeper -n '__fish_use_subcommand' -a 'info' -d 'Show information'
complete -c dep-sweeper -n '__fish_use_subcommand' -a 'config' -d 'Configuration management'
complete -c dep-sweeper -n '__fish_use_subcommand' -a 'completion' -d 'Shell completion'
complete -c dep-sweeper -n '__fish_use_subcommand' -l version -d 'Show version'

complete -c dep-sweeper -n '__fish_seen_subcommand_from analyze' -l manifest-path -d 'Path to Cargo.toml' -F
complete -c dep-sweeper -n '__fish_seen_subcommand_from analyze' -l source-dir -d 'Source directory' -x -a "(__fish_complete_directories)"
complete -c dep-sweeper -n '__fish_seen_subcommand_from analyze' -l metadata-source -d 'Metadata source' -x -a 'toml cargo'
complete -c dep-sweeper -n '__fish_seen_subcommand_from analyze' -l output-format -d 'Output format' -x -a 'text json'
complete -c dep-sweeper -n '__fish_seen_subcommand_from analyze' -l output-file -d 'Output file' -F
complete -c dep-sweeper -n '__fish_seen_subcommand_from analyze' -l ignore -d 'Never report this dependency' -x
complete -c dep-sweeper -n '__fish_seen_subcommand_from analyze' -l fail-on-unused -d 'Fail when anything is flagged'
complete -c dep-sweeper -n '__fish_seen_subcommand_from analyze' -l quiet -d 'Quiet mode'
complete -c dep-sweeper -n '__fish_seen_subcommand_from analyze' -l verbose -d 'Verbose mode'

complete -c dep-sweeper -n '__fish_seen_subcommand_from config' -a 'init' -d 'Create sample config'
complete -c dep-sweeper -n '__fish_seen_subcommand_from config' -a 'show' -d 'Show current config'
complete -c dep-sweeper -n '__fish_seen_subcommand_from config' -a 'validate' -d 'Validate config file'
"""


def get_completion_scripts() -> Dict[str, str]:
    """Return all completion scripts."""
    return {
        "bash": get_bash_completion(),
        "zsh": get_zsh_completion(),
        "fish": get_fish_completion(),
    }
